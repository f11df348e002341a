"""Process-local store implementations.

Used when the engine is embedded in-process (and by the test-suite). Pair
state defaults to this backend in the app as well, since it is ephemeral and
reconstructible.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime

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


class InMemoryContactDirectory:
    """Users and directed contact edges held in dicts."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[int, UserProfile] = {}
        # owner_id -> contact_id -> status
        self._edges: dict[int, dict[int, ContactStatus]] = {}

    def add_user(self, user_id: int, display_name: str = "", ghost_mode: bool = False) -> UserProfile:
        user = UserProfile(id=user_id, display_name=display_name or f"user{user_id}", ghost_mode=ghost_mode)
        with self._lock:
            self._users[user_id] = user
        return user

    def set_ghost_mode(self, user_id: int, enabled: bool) -> None:
        with self._lock:
            self._users[user_id] = replace(self._users[user_id], ghost_mode=enabled)

    def mark_deleted(self, user_id: int) -> None:
        with self._lock:
            self._users[user_id] = replace(self._users[user_id], is_deleted=True)
            self._edges.pop(user_id, None)
            for edges in self._edges.values():
                edges.pop(user_id, None)

    def set_edge(self, owner_id: int, contact_id: int, status: ContactStatus) -> None:
        """Set one direction only."""
        with self._lock:
            self._edges.setdefault(owner_id, {})[contact_id] = status

    def link(self, user_a: int, user_b: int, status: ContactStatus = ContactStatus.accepted) -> None:
        """Set both directions to the same status."""
        self.set_edge(user_a, user_b, status)
        self.set_edge(user_b, user_a, status)

    def get_user(self, user_id: int) -> UserProfile | None:
        with self._lock:
            return self._users.get(user_id)

    def edges_from(self, user_id: int) -> Mapping[int, ContactStatus]:
        with self._lock:
            return dict(self._edges.get(user_id, {}))

    def set_battery_level(self, user_id: int, battery_level: int) -> None:
        with self._lock:
            user = self._users.get(user_id)
            if user:
                self._users[user_id] = replace(user, battery_level=battery_level)


class InMemoryLocationStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: dict[int, LocationSample] = {}

    def get_latest_location(self, user_id: int) -> LocationSample | None:
        with self._lock:
            return self._latest.get(user_id)

    def put_location(self, user_id: int, sample: LocationSample) -> None:
        with self._lock:
            self._latest[user_id] = sample

    def delete_location(self, user_id: int) -> None:
        with self._lock:
            self._latest.pop(user_id, None)


class InMemoryHistoryStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[MeetingRecord] = []
        self._ids = itertools.count(1)

    def append_meeting_record(self, record: MeetingRecord) -> MeetingRecord:
        with self._lock:
            stored = replace(record, id=next(self._ids))
            self._records.append(stored)
        return stored

    def meetings_of(self, user_id: int, limit: int) -> list[MeetingRecord]:
        with self._lock:
            mine = [r for r in self._records if user_id in r.participants]
        mine.sort(key=lambda r: (r.started_at, r.id or 0), reverse=True)
        return mine[:limit]

    def all(self) -> list[MeetingRecord]:
        with self._lock:
            return list(self._records)


class InMemoryAlertStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._alerts: dict[int, EmergencyAlert] = {}
        self._ids = itertools.count(1)

    def create_alert(self, alert: EmergencyAlert) -> int:
        with self._lock:
            alert_id = next(self._ids)
            self._alerts[alert_id] = replace(alert, id=alert_id, deliveries=dict(alert.deliveries))
        return alert_id

    def get_alert(self, alert_id: int) -> EmergencyAlert | None:
        with self._lock:
            alert = self._alerts.get(alert_id)
            return replace(alert, deliveries=dict(alert.deliveries)) if alert else None

    def update_alert_status(
        self, alert_id: int, status: AlertStatus, resolved_at: datetime | None = None
    ) -> None:
        with self._lock:
            alert = self._alerts[alert_id]
            alert.status = status
            alert.resolved_at = resolved_at

    def record_delivery(self, alert_id: int, recipient_id: int, outcome: DeliveryOutcome) -> None:
        with self._lock:
            self._alerts[alert_id].deliveries[recipient_id] = outcome

    def alerts_visible_to(self, user_id: int, status: AlertStatus | None = None) -> list[EmergencyAlert]:
        with self._lock:
            alerts = [
                replace(a, deliveries=dict(a.deliveries))
                for a in self._alerts.values()
                if (a.sender_id == user_id or user_id in a.recipient_ids)
                and (status is None or a.status == status)
            ]
        alerts.sort(key=lambda a: (a.created_at, a.id or 0), reverse=True)
        return alerts


class InMemoryPairStateStore:
    """Pair state keyed by pair key. Callers serialize per key."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, PairState] = {}

    def get(self, pair_key: str) -> PairState | None:
        with self._lock:
            state = self._states.get(pair_key)
            return replace(state) if state else None

    def put(self, state: PairState) -> None:
        with self._lock:
            self._states[state.pair_key] = replace(state)
