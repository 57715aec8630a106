from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, status


async def current_learner_id(
    learner_id: Optional[str] = None,
    x_learner_id: Optional[str] = Header(default=None),
) -> str:
    """Resolve the learner from the `X-Learner-Id` header or `learner_id` query param.

    Authentication lives outside this service; the caller is trusted to pass
    the learner it acts for. Falls back to the query param when the header is
    missing.
    """
    learner = (x_learner_id or learner_id or "").strip()
    if not learner:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Learner id required"
        )
    return learner
