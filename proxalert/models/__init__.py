"""SQLAlchemy models."""

from __future__ import annotations

from proxalert.models.contact_link import ContactLink
from proxalert.models.location import Location
from proxalert.models.meeting_history import MeetingHistory
from proxalert.models.pair_state import PairStateRecord
from proxalert.models.sos_alert import SosAlert
from proxalert.models.sos_recipient import SosRecipient
from proxalert.models.user import User

__all__ = [
    "User",
    "ContactLink",
    "Location",
    "MeetingHistory",
    "PairStateRecord",
    "SosAlert",
    "SosRecipient",
]
