"""Proximity evaluation for a freshly recorded location."""

from __future__ import annotations

import logging
from datetime import datetime

from proxalert.core.geo import distance_meters
from proxalert.services.contact_graph import ContactGraph
from proxalert.services.dedup import AlertDeduplicator
from proxalert.services.dispatcher import NotificationDispatcher
from proxalert.services.location_ledger import LocationLedger
from proxalert.services.meeting_detector import MeetingDetector
from proxalert.services.types import ContactProximity, Proximity, ProximityReport, pair_key

logger = logging.getLogger(__name__)


def _nearby_payload(contact_id: int, contact_name: str, distance_m: float) -> dict:
    return {
        "type": "nearby",
        "contact_id": contact_id,
        "distance_m": round(distance_m),
        "message": f"You are near {contact_name}!",
    }


class ProximityEvaluator:
    """Checks one user's position against every visible contact.

    This is a linear scan over the contact list on every update. Contact lists
    are small; a spatial index would be the fix if that stops being true.
    """

    def __init__(
        self,
        graph: ContactGraph,
        ledger: LocationLedger,
        dedup: AlertDeduplicator,
        meetings: MeetingDetector,
        dispatcher: NotificationDispatcher,
        nearby_threshold_m: float,
        meeting_threshold_m: float,
    ) -> None:
        self._graph = graph
        self._ledger = ledger
        self._dedup = dedup
        self._meetings = meetings
        self._dispatcher = dispatcher
        self._nearby_threshold_m = nearby_threshold_m
        self._meeting_threshold_m = meeting_threshold_m

    def classify(self, distance_m: float) -> Proximity:
        if distance_m <= self._meeting_threshold_m:
            return Proximity.meeting
        if distance_m <= self._nearby_threshold_m:
            return Proximity.nearby
        return Proximity.far

    def evaluate(self, user_id: int, now: datetime) -> ProximityReport:
        report = ProximityReport(user_id=user_id, evaluated_at=now)
        if self._graph.is_ghost(user_id):
            logger.debug("User %s is in ghost mode; skipping proximity", user_id)
            return report

        mine = self._ledger.latest(user_id)
        if mine is None:
            return report
        my_fresh = self._ledger.is_fresh(user_id, now)

        for contact_id in sorted(self._graph.visible_contacts_of(user_id)):
            theirs = self._ledger.latest(contact_id)
            if theirs is None:
                continue

            distance = distance_meters(mine.latitude, mine.longitude, theirs.latitude, theirs.longitude)
            classification = self.classify(distance)
            report.contacts.append(ContactProximity(contact_id, distance, classification))
            key = pair_key(user_id, contact_id)

            if classification != Proximity.far and self._dedup.should_alert(key, now):
                self._notify_pair(user_id, contact_id, distance)
                report.alerted.append(contact_id)

            fresh = my_fresh and self._ledger.is_fresh(contact_id, now)
            record = self._meetings.observe(key, distance, now, mine, theirs, fresh=fresh)
            if record is not None:
                report.meetings.append(record)

        return report

    def _notify_pair(self, user_id: int, contact_id: int, distance_m: float) -> None:
        # Both members hear about it, each named after the other
        self._dispatcher.deliver(
            user_id, _nearby_payload(contact_id, self._graph.display_name(contact_id), distance_m)
        )
        self._dispatcher.deliver(
            contact_id, _nearby_payload(user_id, self._graph.display_name(user_id), distance_m)
        )
