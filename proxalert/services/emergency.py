"""Emergency (SOS) broadcast and resolution."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from proxalert.core.errors import AlertNotFound, Unauthorized
from proxalert.core.geo import validate_coordinates
from proxalert.core.policies import DEFAULT_SOS_MESSAGE
from proxalert.services.contact_graph import ContactGraph
from proxalert.services.dispatcher import NotificationDispatcher
from proxalert.services.locks import KeyedLocks
from proxalert.services.stores import AlertStore, ContactDirectory
from proxalert.services.types import AlertStatus, DeliveryOutcome, EmergencyAlert

logger = logging.getLogger(__name__)


def _sos_payload(alert: EmergencyAlert, sender_name: str) -> dict:
    return {
        "type": "sos",
        "alert_id": alert.id,
        "sender_id": alert.sender_id,
        "sender_name": sender_name,
        "latitude": alert.latitude,
        "longitude": alert.longitude,
        "battery_level": alert.battery_level,
        "message": alert.message,
        "sent_at": alert.created_at.isoformat(),
    }


def _resolved_payload(alert: EmergencyAlert, sender_name: str) -> dict:
    return {
        "type": "sos_resolved",
        "alert_id": alert.id,
        "sender_id": alert.sender_id,
        "message": f"{sender_name} is now safe!",
    }


class EmergencyBroadcaster:
    def __init__(
        self,
        graph: ContactGraph,
        directory: ContactDirectory,
        alerts: AlertStore,
        dispatcher: NotificationDispatcher,
        locks: KeyedLocks,
        clock: Callable[[], datetime],
    ) -> None:
        self._graph = graph
        self._directory = directory
        self._alerts = alerts
        self._dispatcher = dispatcher
        self._locks = locks
        self._clock = clock

    def broadcast(
        self,
        sender_id: int,
        latitude: float,
        longitude: float,
        message: str | None = None,
        battery_level: int | None = None,
    ) -> EmergencyAlert:
        """Create an active alert and notify every contact of the sender.

        The recipient set is resolved once and frozen on the alert. It includes
        ghost-mode contacts: ghost mode hides a user's position, not their
        ability to hear that someone needs help. Individual delivery failures
        are recorded on the alert and never abort the fan-out.
        """
        validate_coordinates(latitude, longitude)
        if battery_level is not None:
            if not 0 <= battery_level <= 100:
                raise ValueError(f"Battery level out of range: {battery_level}")
            self._directory.set_battery_level(sender_id, battery_level)
        else:
            sender = self._directory.get_user(sender_id)
            battery_level = sender.battery_level if sender else None

        recipients = tuple(sorted(self._graph.emergency_contacts_of(sender_id)))
        alert = EmergencyAlert(
            sender_id=sender_id,
            latitude=latitude,
            longitude=longitude,
            message=message or DEFAULT_SOS_MESSAGE,
            battery_level=battery_level,
            created_at=self._clock(),
            recipient_ids=recipients,
        )
        alert.id = self._alerts.create_alert(alert)

        if not recipients:
            logger.info("SOS %s from user %s has no contacts to notify", alert.id, sender_id)
            return alert

        payload = _sos_payload(alert, self._graph.display_name(sender_id))
        outcomes = self._dispatcher.deliver_many(recipients, payload)
        for recipient_id, outcome in outcomes.items():
            self._alerts.record_delivery(alert.id, recipient_id, outcome)
            alert.deliveries[recipient_id] = outcome

        delivered = sum(1 for o in outcomes.values() if o == DeliveryOutcome.ok)
        logger.info(
            "SOS %s from user %s sent to %d contacts (%d delivered)",
            alert.id,
            sender_id,
            len(recipients),
            delivered,
        )
        return alert

    def resolve(self, alert_id: int, requester_id: int) -> EmergencyAlert:
        """Mark an alert resolved. Only the sender may; repeating is a no-op."""
        with self._locks.hold(f"alert:{alert_id}"):
            alert = self._alerts.get_alert(alert_id)
            if alert is None:
                raise AlertNotFound(f"SOS alert {alert_id} not found")
            if alert.sender_id != requester_id:
                raise Unauthorized("Only the sender can resolve this SOS alert")
            if alert.status == AlertStatus.resolved:
                return alert

            alert.status = AlertStatus.resolved
            alert.resolved_at = self._clock()
            self._alerts.update_alert_status(alert_id, AlertStatus.resolved, alert.resolved_at)

        payload = _resolved_payload(alert, self._graph.display_name(alert.sender_id))
        self._dispatcher.deliver_many(alert.recipient_ids, payload)
        logger.info("SOS %s resolved by user %s", alert_id, requester_id)
        return alert
