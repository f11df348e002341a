"""Meeting history schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class MeetingResponse(BaseModel):
    id: int | None
    other_user_id: int
    other_name: str = ""
    started_at: datetime
    duration_ms: int
    latitude: float
    longitude: float
    created_at: datetime
