"""SQLAlchemy-backed store implementations.

Each call opens its own short session so the stores are safe to use from the
engine's worker threads.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from proxalert.models.contact_link import ContactLink
from proxalert.models.location import Location
from proxalert.models.meeting_history import MeetingHistory
from proxalert.models.pair_state import PairStateRecord
from proxalert.models.sos_alert import SosAlert
from proxalert.models.sos_recipient import SosRecipient
from proxalert.models.user import User
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


def _aware(dt: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)


def user_profile(user: User) -> UserProfile:
    return UserProfile(
        id=user.id,
        display_name=user.display_name,
        ghost_mode=user.ghost_mode,
        battery_level=user.battery_level,
        is_deleted=user.is_deleted,
    )


def location_sample(row: Location) -> LocationSample:
    return LocationSample(
        owner_id=row.user_id,
        latitude=row.latitude,
        longitude=row.longitude,
        accuracy=row.accuracy,
        altitude=row.altitude,
        speed=row.speed,
        observed_at=_aware(row.observed_at),
        recorded_at=_aware(row.recorded_at),
    )


def meeting_record(row: MeetingHistory) -> MeetingRecord:
    return MeetingRecord(
        id=row.id,
        participants=(row.user_a_id, row.user_b_id),
        started_at=_aware(row.started_at),
        duration_ms=row.duration_ms,
        latitude=row.latitude,
        longitude=row.longitude,
        created_at=_aware(row.created_at),
    )


class _SqlStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory


class SqlContactDirectory(_SqlStore):
    def get_user(self, user_id: int) -> UserProfile | None:
        with self._session_factory() as db:
            user = db.get(User, user_id)
            return user_profile(user) if user else None

    def edges_from(self, user_id: int) -> Mapping[int, ContactStatus]:
        with self._session_factory() as db:
            rows = db.execute(
                select(ContactLink.contact_id, ContactLink.status).where(ContactLink.owner_id == user_id)
            ).all()
        return {contact_id: ContactStatus(status) for contact_id, status in rows}

    def set_battery_level(self, user_id: int, battery_level: int) -> None:
        with self._session_factory() as db:
            user = db.get(User, user_id)
            if user:
                user.battery_level = battery_level
                db.commit()


class SqlLocationStore(_SqlStore):
    def get_latest_location(self, user_id: int) -> LocationSample | None:
        with self._session_factory() as db:
            row = self._row_for(db, user_id)
            return location_sample(row) if row else None

    def _row_for(self, db: Session, user_id: int) -> Location | None:
        return db.execute(select(Location).where(Location.user_id == user_id)).scalar_one_or_none()

    def _write(self, db: Session, user_id: int, sample: LocationSample) -> None:
        row = self._row_for(db, user_id)
        if row is None:
            row = Location(user_id=user_id)
            db.add(row)
        row.latitude = sample.latitude
        row.longitude = sample.longitude
        row.accuracy = sample.accuracy
        row.altitude = sample.altitude
        row.speed = sample.speed
        row.observed_at = sample.observed_at
        row.recorded_at = sample.recorded_at
        db.commit()

    def put_location(self, user_id: int, sample: LocationSample) -> None:
        with self._session_factory() as db:
            try:
                self._write(db, user_id, sample)
            except IntegrityError:
                # A concurrent first update inserted the row; overwrite it
                db.rollback()
                self._write(db, user_id, sample)

    def delete_location(self, user_id: int) -> None:
        with self._session_factory() as db:
            db.execute(delete(Location).where(Location.user_id == user_id))
            db.commit()


class SqlHistoryStore(_SqlStore):
    def append_meeting_record(self, record: MeetingRecord) -> MeetingRecord:
        a, b = sorted(record.participants)
        with self._session_factory() as db:
            row = MeetingHistory(
                user_a_id=a,
                user_b_id=b,
                started_at=record.started_at,
                duration_ms=record.duration_ms,
                latitude=record.latitude,
                longitude=record.longitude,
                created_at=record.created_at,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return meeting_record(row)

    def meetings_of(self, user_id: int, limit: int) -> list[MeetingRecord]:
        with self._session_factory() as db:
            result = db.execute(
                select(MeetingHistory)
                .where(or_(MeetingHistory.user_a_id == user_id, MeetingHistory.user_b_id == user_id))
                .order_by(MeetingHistory.started_at.desc(), MeetingHistory.id.desc())
                .limit(limit)
            )
            return [meeting_record(row) for row in result.scalars().all()]


class SqlAlertStore(_SqlStore):
    def _load(self, db: Session, alert: SosAlert) -> EmergencyAlert:
        recipients = db.execute(
            select(SosRecipient).where(SosRecipient.sos_alert_id == alert.id).order_by(SosRecipient.recipient_id)
        ).scalars().all()
        return EmergencyAlert(
            id=alert.id,
            sender_id=alert.sender_id,
            latitude=alert.latitude,
            longitude=alert.longitude,
            message=alert.message,
            battery_level=alert.battery_level,
            created_at=_aware(alert.created_at),
            recipient_ids=tuple(r.recipient_id for r in recipients),
            status=AlertStatus(alert.status),
            resolved_at=_aware(alert.resolved_at),
            deliveries={
                r.recipient_id: DeliveryOutcome(r.delivery_status) for r in recipients if r.delivery_status
            },
        )

    def create_alert(self, alert: EmergencyAlert) -> int:
        with self._session_factory() as db:
            row = SosAlert(
                sender_id=alert.sender_id,
                latitude=alert.latitude,
                longitude=alert.longitude,
                message=alert.message,
                battery_level=alert.battery_level,
                status=alert.status.value,
                created_at=alert.created_at,
            )
            db.add(row)
            db.flush()
            for rid in alert.recipient_ids:
                db.add(SosRecipient(sos_alert_id=row.id, recipient_id=rid))
            db.commit()
            return row.id

    def get_alert(self, alert_id: int) -> EmergencyAlert | None:
        with self._session_factory() as db:
            row = db.get(SosAlert, alert_id)
            return self._load(db, row) if row else None

    def update_alert_status(
        self, alert_id: int, status: AlertStatus, resolved_at: datetime | None = None
    ) -> None:
        with self._session_factory() as db:
            row = db.get(SosAlert, alert_id)
            if row is None:
                raise LookupError(f"SOS alert {alert_id} not found")
            row.status = status.value
            row.resolved_at = resolved_at
            db.commit()

    def record_delivery(self, alert_id: int, recipient_id: int, outcome: DeliveryOutcome) -> None:
        with self._session_factory() as db:
            rec = db.execute(
                select(SosRecipient).where(
                    SosRecipient.sos_alert_id == alert_id,
                    SosRecipient.recipient_id == recipient_id,
                )
            ).scalar_one_or_none()
            if rec is None:
                return
            rec.delivery_status = outcome.value
            db.commit()

    def alerts_visible_to(self, user_id: int, status: AlertStatus | None = None) -> list[EmergencyAlert]:
        with self._session_factory() as db:
            received = select(SosRecipient.sos_alert_id).where(SosRecipient.recipient_id == user_id)
            stmt = select(SosAlert).where(or_(SosAlert.sender_id == user_id, SosAlert.id.in_(received)))
            if status is not None:
                stmt = stmt.where(SosAlert.status == status.value)
            stmt = stmt.order_by(SosAlert.created_at.desc(), SosAlert.id.desc())
            return [self._load(db, row) for row in db.execute(stmt).scalars().all()]


class SqlPairStateStore(_SqlStore):
    def get(self, pair_key: str) -> PairState | None:
        with self._session_factory() as db:
            row = db.get(PairStateRecord, pair_key)
            if row is None:
                return None
            return PairState(
                pair_key=row.pair_key,
                last_alert_at=_aware(row.last_alert_at),
                in_range_since=_aware(row.in_range_since),
                meeting_logged=row.meeting_logged,
                last_evaluated_at=_aware(row.last_evaluated_at),
            )

    def put(self, state: PairState) -> None:
        with self._session_factory() as db:
            row = db.get(PairStateRecord, state.pair_key)
            if row is None:
                row = PairStateRecord(pair_key=state.pair_key)
                db.add(row)
            row.last_alert_at = state.last_alert_at
            row.in_range_since = state.in_range_since
            row.meeting_logged = state.meeting_logged
            row.last_evaluated_at = state.last_evaluated_at
            db.commit()
