"""SOS schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class SosSendRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    message: str | None = Field(default=None, max_length=500)
    battery_level: int | None = Field(default=None, ge=0, le=100)


class SosRecipientResponse(BaseModel):
    recipient_id: int
    delivery_status: str | None  # ok | no_channel | failed


class SosAlertResponse(BaseModel):
    id: int
    sender_id: int
    sender_name: str = ""
    latitude: float
    longitude: float
    message: str
    battery_level: int | None
    status: str  # active | resolved
    created_at: datetime
    resolved_at: datetime | None
    recipients: list[SosRecipientResponse] = []
