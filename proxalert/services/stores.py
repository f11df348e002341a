"""Storage and delivery contracts the engine depends on.

Two backends implement these: `memory_stores` (process-local) and
`sql_stores` (SQLAlchemy). The engine only ever talks to these protocols.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol

from proxalert.services.types import (
    AlertStatus,
    ContactStatus,
    DeliveryOutcome,
    EmergencyAlert,
    LocationSample,
    MeetingRecord,
    PairState,
    UserProfile,
)


class ContactDirectory(Protocol):
    def get_user(self, user_id: int) -> UserProfile | None: ...

    def edges_from(self, user_id: int) -> Mapping[int, ContactStatus]:
        """Directed edges owned by `user_id`: contact id -> status."""
        ...

    def set_battery_level(self, user_id: int, battery_level: int) -> None: ...


class LocationStore(Protocol):
    def get_latest_location(self, user_id: int) -> LocationSample | None: ...

    def put_location(self, user_id: int, sample: LocationSample) -> None: ...

    def delete_location(self, user_id: int) -> None: ...


class HistoryStore(Protocol):
    def append_meeting_record(self, record: MeetingRecord) -> MeetingRecord: ...

    def meetings_of(self, user_id: int, limit: int) -> list[MeetingRecord]: ...


class AlertStore(Protocol):
    def create_alert(self, alert: EmergencyAlert) -> int: ...

    def get_alert(self, alert_id: int) -> EmergencyAlert | None: ...

    def update_alert_status(
        self, alert_id: int, status: AlertStatus, resolved_at: datetime | None = None
    ) -> None: ...

    def record_delivery(self, alert_id: int, recipient_id: int, outcome: DeliveryOutcome) -> None: ...

    def alerts_visible_to(self, user_id: int, status: AlertStatus | None = None) -> list[EmergencyAlert]:
        """Alerts the user sent or received, newest first."""
        ...


class PairStateStore(Protocol):
    def get(self, pair_key: str) -> PairState | None: ...

    def put(self, state: PairState) -> None: ...


class PushChannel(Protocol):
    def push(self, recipient_id: int, payload: dict[str, Any]) -> DeliveryOutcome: ...
