"""Contact schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ContactRequest(BaseModel):
    contact_id: int


class ContactLinkResponse(BaseModel):
    id: int
    owner_id: int
    contact_id: int
    status: str
    requested_by: int
    created_at: datetime

    model_config = {"from_attributes": True}


class ContactWithUser(ContactLinkResponse):
    """Contact link with the other person's display name."""

    contact_name: str = ""


class MeetingPointResponse(BaseModel):
    contact_id: int
    latitude: float
    longitude: float
