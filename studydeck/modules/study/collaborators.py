"""Deck collaborator: where decks come from and where progress goes.

`HttpDeckClient` talks to the study API (`studydeck.apis`). Anything with the
same four coroutines can stand in for it, e.g. an in-memory fake in tests.
"""

from __future__ import annotations

from typing import Optional, Protocol

import httpx

from studydeck.core.config import settings
from studydeck.modules.study.models import DeckPayload, ProgressSnapshot


LEARNER_HEADER = "X-Learner-Id"


class DeckCollaboratorError(Exception):
    """Raised when the deck or progress API cannot be reached or answers badly."""

    pass


class DeckCollaborator(Protocol):
    async def fetch_deck(self, deck_id: str) -> DeckPayload: ...

    async def fetch_progress(self, deck_id: str) -> Optional[ProgressSnapshot]: ...

    async def write_progress(self, deck_id: str, snapshot: ProgressSnapshot) -> None: ...

    async def delete_progress(self, deck_id: str) -> None: ...


class HttpDeckClient:
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        learner_id: Optional[str] = None,
        timeout: Optional[float] = None,
        version: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.study.api_base_url).rstrip("/")
        self.learner_id = learner_id or settings.study.learner_id
        self.version = version or settings.app.version
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={LEARNER_HEADER: self.learner_id},
            timeout=timeout or settings.study.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpDeckClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _deck_url(self, deck_id: str) -> str:
        return f"/{self.version}/decks/{deck_id}"

    def _progress_url(self, deck_id: str) -> str:
        return f"/{self.version}/study-progress/{deck_id}"

    async def fetch_deck(self, deck_id: str) -> DeckPayload:
        try:
            response = await self._client.get(self._deck_url(deck_id))
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DeckCollaboratorError(f"fetch_deck({deck_id}) failed: {e}") from e
        return DeckPayload.model_validate(response.json())

    async def fetch_progress(self, deck_id: str) -> Optional[ProgressSnapshot]:
        try:
            response = await self._client.get(self._progress_url(deck_id))
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DeckCollaboratorError(
                f"fetch_progress({deck_id}) failed: {e}"
            ) from e
        return ProgressSnapshot.model_validate(response.json())

    async def write_progress(self, deck_id: str, snapshot: ProgressSnapshot) -> None:
        try:
            response = await self._client.post(
                self._progress_url(deck_id), json=snapshot.to_wire()
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DeckCollaboratorError(
                f"write_progress({deck_id}) failed: {e}"
            ) from e

    async def delete_progress(self, deck_id: str) -> None:
        try:
            response = await self._client.delete(self._progress_url(deck_id))
            if response.status_code == 404:
                return
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DeckCollaboratorError(
                f"delete_progress({deck_id}) failed: {e}"
            ) from e
