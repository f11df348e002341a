"""Location schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class LocationUpdate(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: float | None = Field(default=None, gt=0)
    altitude: float | None = None
    speed: float | None = None
    observed_at: datetime | None = None  # device clock, informational only


class ContactProximityResponse(BaseModel):
    contact_id: int
    distance_m: float
    classification: str  # far | nearby | meeting


class LocationUpdateResponse(BaseModel):
    status: str = "ok"
    recorded_at: datetime
    contacts: list[ContactProximityResponse] = []
    alerted: list[int] = []


class FriendLocation(BaseModel):
    user_id: int
    display_name: str
    latitude: float
    longitude: float
    accuracy: float | None = None
    battery_level: int | None = None
    recorded_at: datetime | None = None
