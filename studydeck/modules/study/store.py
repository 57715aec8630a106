"""Progress persistence: a local cache slot plus a debounced remote writer.

The local cache is written synchronously on every save and is the durability
guarantee the learner sees. The remote write is best-effort: it is debounced
(last write wins), never awaited by the caller, and its failures are logged
and dropped without retry.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from studydeck.core.config import settings
from studydeck.core.logging import get_logger
from studydeck.core.task_queue import BackgroundTasks, Debouncer
from studydeck.modules.study.collaborators import DeckCollaborator
from studydeck.modules.study.models import DisplayState, ProgressSnapshot, StudyMode


logger = get_logger(__name__)


def exit_snapshot(snapshot: ProgressSnapshot, display: DisplayState) -> ProgressSnapshot:
    """Snapshot to flush when the learner leaves the session.

    Intentional product rule, do not "fix": leaving from the Review Needed
    prompt or from inside Review mode always resumes at the first card of the
    review pass. Leaving mid-deck in Normal mode, or from Completed, keeps the
    exact index and mode.
    """
    if display in (DisplayState.REVIEW_NEEDED, DisplayState.REVIEWING):
        return snapshot.model_copy(
            update={"mode": StudyMode.REVIEW, "current_index": 0}
        )
    return snapshot


class LocalProgressCache:
    """Single system-wide slot, stored as JSON under a fixed storage key."""

    def __init__(
        self, path: Optional[Path | str] = None, storage_key: Optional[str] = None
    ) -> None:
        self.path = Path(path or settings.study.local_cache_path)
        self.storage_key = storage_key or settings.study.storage_key

    def _read_all(self) -> dict:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Local progress cache unreadable at {self.path}: {e}")
            return {}
        return raw if isinstance(raw, dict) else {}

    def _write_all(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.path)

    def read(self) -> Optional[ProgressSnapshot]:
        entry = self._read_all().get(self.storage_key)
        if entry is None:
            return None
        try:
            return ProgressSnapshot.model_validate(entry)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed cached progress: {e}")
            return None

    def write(self, snapshot: ProgressSnapshot) -> bool:
        data = self._read_all()
        data[self.storage_key] = snapshot.to_wire()
        try:
            self._write_all(data)
        except OSError as e:
            logger.warning(
                f"Local progress cache write failed: {e}",
                extra={"deck_id": snapshot.deck_id},
            )
            return False
        return True

    def clear(self) -> bool:
        data = self._read_all()
        if self.storage_key not in data:
            return True
        data.pop(self.storage_key, None)
        try:
            self._write_all(data)
        except OSError as e:
            logger.warning(f"Local progress cache clear failed: {e}")
            return False
        return True


class ProgressStore:
    def __init__(
        self,
        remote: DeckCollaborator,
        cache: Optional[LocalProgressCache] = None,
        *,
        debounce_seconds: Optional[float] = None,
    ) -> None:
        self.remote = remote
        self.cache = cache or LocalProgressCache()
        if debounce_seconds is None:
            debounce_seconds = settings.study.debounce_seconds
        # One timer per store so separate sessions never cancel each other
        self._debouncer = Debouncer(debounce_seconds)
        self._tasks = BackgroundTasks(name="progress")

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    @property
    def in_flight(self) -> int:
        return self._tasks.in_flight

    # Writes -------------------------------------------------------------
    def save(self, snapshot: ProgressSnapshot) -> None:
        self.cache.write(snapshot)
        if not self._debouncer.schedule(lambda: self._send(snapshot)):
            logger.warning(
                "No running event loop, progress saved locally only",
                extra={"deck_id": snapshot.deck_id},
            )

    def flush(self, snapshot: ProgressSnapshot) -> Optional[asyncio.Task[None]]:
        """Write now, skipping the debounce. Without a running loop only the local write happens."""
        self._debouncer.cancel()
        self.cache.write(snapshot)
        return self._send(snapshot)

    def _send(self, snapshot: ProgressSnapshot) -> Optional[asyncio.Task[None]]:
        return self._spawn(lambda: self._write_remote(snapshot), snapshot.deck_id)

    def _spawn(self, fn, deck_id: str) -> Optional[asyncio.Task[None]]:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "No running event loop, remote call skipped", extra={"deck_id": deck_id}
            )
            return None
        return self._tasks.spawn(fn)

    async def _write_remote(self, snapshot: ProgressSnapshot) -> None:
        try:
            await self.remote.write_progress(snapshot.deck_id, snapshot)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                f"Remote progress write dropped: {e}",
                extra={"deck_id": snapshot.deck_id},
            )
            return
        logger.debug(
            f"Remote progress saved at index {snapshot.current_index} ({snapshot.mode.value})",
            extra={"deck_id": snapshot.deck_id},
        )

    def reset(self, deck_id: str) -> Optional[asyncio.Task[None]]:
        self._debouncer.cancel()
        cached = self.cache.read()
        if cached is not None and cached.deck_id == deck_id:
            self.cache.clear()
        return self._spawn(lambda: self._delete_remote(deck_id), deck_id)

    async def _delete_remote(self, deck_id: str) -> None:
        try:
            await self.remote.delete_progress(deck_id)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Remote progress reset dropped: {e}", extra={"deck_id": deck_id})

    # Reads --------------------------------------------------------------
    async def load(self, deck_id: str) -> ProgressSnapshot:
        remote: Optional[ProgressSnapshot] = None
        try:
            remote = await self.remote.fetch_progress(deck_id)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                f"Remote progress fetch failed, trying local cache: {e}",
                extra={"deck_id": deck_id},
            )
        return self.resolve(deck_id, remote)

    def resolve(
        self, deck_id: str, remote: Optional[ProgressSnapshot]
    ) -> ProgressSnapshot:
        """Remote snapshot if present, else the cached one for this deck, else empty."""
        if remote is not None and remote.deck_id == deck_id:
            return remote
        cached = self.cache.read()
        if cached is not None:
            if cached.deck_id == deck_id:
                logger.info("Resuming from local progress cache", extra={"deck_id": deck_id})
                return cached
            # Another deck (or another tab) owns the slot; leave it alone
            logger.info(
                f"Ignoring cached progress for deck {cached.deck_id}",
                extra={"deck_id": deck_id},
            )
        return ProgressSnapshot.empty(deck_id)

    # Teardown -----------------------------------------------------------
    def close(self) -> None:
        self._debouncer.cancel()

    async def drain(self) -> None:
        await self._tasks.drain()
