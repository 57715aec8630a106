from __future__ import annotations

from pydantic import BaseModel


class ProgressResetResponse(BaseModel):
    deck_id: str
    reset: bool
    message: str
