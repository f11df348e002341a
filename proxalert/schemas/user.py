"""User schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    display_name: str = Field(min_length=1, max_length=255)


class UserResponse(BaseModel):
    id: int
    display_name: str
    ghost_mode: bool
    battery_level: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserProvisioned(UserResponse):
    """Returned once at provisioning; carries a token for the new identity."""

    access_token: str
    token_type: str = "bearer"


class GhostModeUpdate(BaseModel):
    enabled: bool


class BatteryUpdate(BaseModel):
    battery_level: int = Field(ge=0, le=100)
