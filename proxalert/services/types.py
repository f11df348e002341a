"""Domain types shared by the engine services.

These are plain dataclasses so the engine does not depend on how records are
stored; the SQL and in-memory stores both convert to and from them.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime


class ContactStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    removed = "removed"
    blocked = "blocked"


class AlertStatus(str, enum.Enum):
    active = "active"
    resolved = "resolved"


class DeliveryOutcome(str, enum.Enum):
    ok = "ok"
    no_channel = "no_channel"
    failed = "failed"


class Proximity(str, enum.Enum):
    far = "far"
    nearby = "nearby"
    meeting = "meeting"


@dataclass(frozen=True)
class UserProfile:
    id: int
    display_name: str
    ghost_mode: bool = False
    battery_level: int | None = None
    is_deleted: bool = False


@dataclass(frozen=True)
class LocationSample:
    """One position fix. `recorded_at` is stamped by the ledger on receipt."""

    owner_id: int
    latitude: float
    longitude: float
    accuracy: float | None = None
    altitude: float | None = None
    speed: float | None = None
    observed_at: datetime | None = None
    recorded_at: datetime | None = None


@dataclass
class PairState:
    """Mutable per-pair state guarded by the pair lock."""

    pair_key: str
    last_alert_at: datetime | None = None
    in_range_since: datetime | None = None
    meeting_logged: bool = False
    last_evaluated_at: datetime | None = None

    @property
    def together(self) -> bool:
        return self.in_range_since is not None


@dataclass(frozen=True)
class MeetingRecord:
    participants: tuple[int, int]
    started_at: datetime
    duration_ms: int
    latitude: float
    longitude: float
    created_at: datetime
    id: int | None = None


@dataclass
class EmergencyAlert:
    sender_id: int
    latitude: float
    longitude: float
    message: str
    created_at: datetime
    recipient_ids: tuple[int, ...]
    battery_level: int | None = None
    status: AlertStatus = AlertStatus.active
    resolved_at: datetime | None = None
    deliveries: dict[int, DeliveryOutcome] = field(default_factory=dict)
    id: int | None = None


@dataclass(frozen=True)
class ContactProximity:
    contact_id: int
    distance_m: float
    classification: Proximity


@dataclass
class ProximityReport:
    """Outcome of evaluating one location update."""

    user_id: int
    evaluated_at: datetime
    contacts: list[ContactProximity] = field(default_factory=list)
    alerted: list[int] = field(default_factory=list)
    meetings: list[MeetingRecord] = field(default_factory=list)

    def classification_of(self, contact_id: int) -> Proximity | None:
        for c in self.contacts:
            if c.contact_id == contact_id:
                return c.classification
        return None


def pair_key(user_a: int, user_b: int) -> str:
    """Order-independent key for two users."""
    lo, hi = sorted((user_a, user_b))
    return f"{lo}:{hi}"


def pair_members(key: str) -> tuple[int, int]:
    lo, hi = key.split(":")
    return int(lo), int(hi)
