"""Proximity & emergency alert engine.

The single entry point for both the HTTP routes and any event-driven
adapter; neither re-implements the rules.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from proxalert.core.config import Settings
from proxalert.core.geo import midpoint
from proxalert.services.contact_graph import ContactGraph
from proxalert.services.dedup import AlertDeduplicator
from proxalert.services.dispatcher import NotificationDispatcher
from proxalert.services.emergency import EmergencyBroadcaster
from proxalert.services.location_ledger import LocationLedger
from proxalert.services.locks import KeyedLocks
from proxalert.services.meeting_detector import MeetingDetector
from proxalert.services.proximity import ProximityEvaluator
from proxalert.services.stores import (
    AlertStore,
    ContactDirectory,
    HistoryStore,
    LocationStore,
    PairStateStore,
    PushChannel,
)
from proxalert.services.types import (
    AlertStatus,
    EmergencyAlert,
    LocationSample,
    MeetingRecord,
    ProximityReport,
    UserProfile,
    pair_key,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProximityEngine:
    def __init__(
        self,
        settings: Settings,
        directory: ContactDirectory,
        locations: LocationStore,
        history: HistoryStore,
        alerts: AlertStore,
        pair_states: PairStateStore,
        channel: PushChannel,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings
        self._clock = clock
        self._history = history
        self._alerts = alerts
        self._locks = KeyedLocks()

        self.graph = ContactGraph(directory)
        self.ledger = LocationLedger(
            locations,
            lookback=timedelta(seconds=settings.ledger_lookback_seconds),
            stale_after=timedelta(seconds=settings.stale_location_seconds),
        )
        self.dispatcher = NotificationDispatcher(
            channel,
            timeout=settings.dispatch_timeout_seconds,
            max_workers=settings.dispatch_workers,
        )
        self.dedup = AlertDeduplicator(
            pair_states, self._locks, cooldown=timedelta(seconds=settings.alert_cooldown_seconds)
        )
        self.meetings = MeetingDetector(
            pair_states,
            history,
            self._locks,
            threshold_m=settings.meeting_threshold_m,
            duration=timedelta(seconds=settings.meeting_duration_seconds),
        )
        self.evaluator = ProximityEvaluator(
            self.graph,
            self.ledger,
            self.dedup,
            self.meetings,
            self.dispatcher,
            nearby_threshold_m=settings.nearby_threshold_m,
            meeting_threshold_m=settings.meeting_threshold_m,
        )
        self.broadcaster = EmergencyBroadcaster(
            self.graph, directory, alerts, self.dispatcher, self._locks, clock
        )
        self._workers = ThreadPoolExecutor(
            max_workers=settings.evaluation_workers, thread_name_prefix="proximity"
        )

    # ---------- Location ----------

    def _record(self, user_id: int, sample: LocationSample) -> datetime:
        now = self._clock()
        self.ledger.record(user_id, sample, now)
        return now

    def _evaluate(self, user_id: int, now: datetime) -> ProximityReport:
        try:
            return self.evaluator.evaluate(user_id, now)
        except Exception:
            logger.exception("Proximity evaluation failed for user %s", user_id)
            return ProximityReport(user_id=user_id, evaluated_at=now)

    def on_location_update(self, user_id: int, sample: LocationSample) -> Future[ProximityReport]:
        """Record a sample and queue its proximity evaluation.

        Invalid coordinates raise InvalidCoordinates here, before anything is
        stored. The returned future resolves once alerts have been dispatched.
        """
        now = self._record(user_id, sample)
        return self._workers.submit(self._evaluate, user_id, now)

    def process_location_update(self, user_id: int, sample: LocationSample) -> ProximityReport:
        """Same unit of work as `on_location_update`, run on the caller's thread."""
        now = self._record(user_id, sample)
        return self._evaluate(user_id, now)

    def friend_locations(self, user_id: int) -> list[tuple[UserProfile, LocationSample]]:
        """Latest positions of visible contacts that have reported one."""
        result = []
        for contact_id in sorted(self.graph.visible_contacts_of(user_id)):
            profile = self.graph.profile(contact_id)
            sample = self.ledger.latest(contact_id)
            if profile and sample:
                result.append((profile, sample))
        return result

    def meeting_point(self, user_id: int, contact_id: int) -> tuple[float, float]:
        """Midpoint between a user and one of their visible contacts.

        Raises LookupError when the contact is not visible or either side has
        no known location.
        """
        if contact_id not in self.graph.visible_contacts_of(user_id):
            raise LookupError("Contact not found")
        mine = self.ledger.latest(user_id)
        theirs = self.ledger.latest(contact_id)
        if mine is None or theirs is None:
            raise LookupError("Location not available")
        return midpoint(mine.latitude, mine.longitude, theirs.latitude, theirs.longitude)

    def meeting_history_of(self, user_id: int, limit: int | None = None) -> list[MeetingRecord]:
        return self._history.meetings_of(user_id, limit or self.settings.history_limit)

    def reset_pairs_of(self, user_id: int) -> None:
        """Drop meeting episodes for a user whose visibility or contacts changed."""
        for contact_id in self.graph.linked_ids(user_id):
            self.reset_pair(user_id, contact_id)

    def reset_pair(self, user_id: int, contact_id: int) -> None:
        self.meetings.reset(pair_key(user_id, contact_id))

    def forget_user(self, user_id: int) -> None:
        """Purge location data for a deleted account."""
        self.reset_pairs_of(user_id)
        self.ledger.purge(user_id)

    # ---------- Emergency ----------

    def send_emergency(
        self,
        sender_id: int,
        latitude: float,
        longitude: float,
        message: str | None = None,
        battery_level: int | None = None,
    ) -> int:
        alert = self.broadcaster.broadcast(sender_id, latitude, longitude, message, battery_level)
        return alert.id

    def resolve_emergency(self, alert_id: int, requester_id: int) -> None:
        self.broadcaster.resolve(alert_id, requester_id)

    def get_alert(self, alert_id: int) -> EmergencyAlert | None:
        return self._alerts.get_alert(alert_id)

    def active_alerts_visible_to(self, user_id: int) -> list[EmergencyAlert]:
        return self._alerts.alerts_visible_to(user_id, status=AlertStatus.active)

    def close(self) -> None:
        self._workers.shutdown(wait=True)
        self.dispatcher.close()
