"""SQLAlchemy store tests (SQLite)."""

import threading
from datetime import timedelta

import pytest

from proxalert.core.config import Settings
from proxalert.db.session import SessionLocal, engine_options
from proxalert.models.contact_link import ContactLink
from proxalert.models.user import User
from proxalert.services.engine import ProximityEngine
from proxalert.services.sql_stores import (
    SqlAlertStore,
    SqlContactDirectory,
    SqlHistoryStore,
    SqlLocationStore,
    SqlPairStateStore,
)
from proxalert.services.types import (
    AlertStatus,
    ContactStatus,
    DeliveryOutcome,
    EmergencyAlert,
    LocationSample,
    MeetingRecord,
    PairState,
)


def _users(db, *names, ghost=()):
    users = [User(display_name=n, ghost_mode=n in ghost) for n in names]
    db.add_all(users)
    db.commit()
    return [u.id for u in users]


def _link(db, a, b, status="accepted"):
    db.add_all([
        ContactLink(owner_id=a, contact_id=b, status=status, requested_by=a),
        ContactLink(owner_id=b, contact_id=a, status=status, requested_by=a),
    ])
    db.commit()


def test_contact_directory(db_session):
    a, b, c = _users(db_session, "Ana", "Ben", "Cy", ghost=("Cy",))
    _link(db_session, a, b)
    _link(db_session, a, c, "pending")
    directory = SqlContactDirectory(SessionLocal)

    assert directory.edges_from(a) == {b: ContactStatus.accepted, c: ContactStatus.pending}
    assert directory.get_user(c).ghost_mode is True
    assert directory.get_user(999_999) is None

    directory.set_battery_level(a, 55)
    assert directory.get_user(a).battery_level == 55


def test_location_upsert_keeps_one_row(db_session, clock):
    (a,) = _users(db_session, "Walker")
    store = SqlLocationStore(SessionLocal)
    assert store.get_latest_location(a) is None

    store.put_location(a, LocationSample(a, 1.0, 2.0, accuracy=5.0, recorded_at=clock()))
    store.put_location(a, LocationSample(a, 3.0, 4.0, recorded_at=clock.advance(30)))

    latest = store.get_latest_location(a)
    assert (latest.latitude, latest.longitude) == (3.0, 4.0)
    assert latest.accuracy is None
    assert latest.recorded_at == clock()

    store.delete_location(a)
    assert store.get_latest_location(a) is None


def test_history_newest_first_with_limit(db_session, clock):
    a, b, c = _users(db_session, "H1", "H2", "H3")
    store = SqlHistoryStore(SessionLocal)
    for other in (b, c, b):
        store.append_meeting_record(
            MeetingRecord(
                participants=(other, a),
                started_at=clock(),
                duration_ms=300_000,
                latitude=1.0,
                longitude=1.0,
                created_at=clock(),
            )
        )
        clock.advance(3600)

    records = store.meetings_of(a, limit=50)
    assert len(records) == 3
    assert records[0].started_at > records[1].started_at > records[2].started_at
    assert records[0].participants == tuple(sorted((a, b)))
    assert len(store.meetings_of(a, limit=2)) == 2
    assert len(store.meetings_of(c, limit=50)) == 1


def test_alert_lifecycle(db_session, clock):
    sender, r1, r2, outsider = _users(db_session, "S", "R1", "R2", "O")
    store = SqlAlertStore(SessionLocal)
    alert_id = store.create_alert(
        EmergencyAlert(
            sender_id=sender,
            latitude=1.0,
            longitude=2.0,
            message="help",
            created_at=clock(),
            recipient_ids=(r1, r2),
            battery_level=9,
        )
    )
    store.record_delivery(alert_id, r1, DeliveryOutcome.ok)
    store.record_delivery(alert_id, r2, DeliveryOutcome.failed)

    alert = store.get_alert(alert_id)
    assert alert.recipient_ids == (r1, r2)
    assert alert.deliveries == {r1: DeliveryOutcome.ok, r2: DeliveryOutcome.failed}
    assert alert.created_at == clock()

    assert [a.id for a in store.alerts_visible_to(sender, AlertStatus.active)] == [alert_id]
    assert [a.id for a in store.alerts_visible_to(r2, AlertStatus.active)] == [alert_id]
    assert store.alerts_visible_to(outsider) == []

    store.update_alert_status(alert_id, AlertStatus.resolved, clock.advance(60))
    resolved = store.get_alert(alert_id)
    assert resolved.status == AlertStatus.resolved
    assert resolved.resolved_at == clock()
    assert store.alerts_visible_to(r1, AlertStatus.active) == []

    with pytest.raises(LookupError):
        store.update_alert_status(999_999, AlertStatus.resolved)


def test_pair_state_round_trip(setup_db, clock):
    store = SqlPairStateStore(SessionLocal)
    assert store.get("sql:pair") is None
    store.put(PairState(pair_key="sql:pair", last_alert_at=clock(), in_range_since=clock() - timedelta(minutes=1)))
    state = store.get("sql:pair")
    assert state.last_alert_at == clock()
    assert state.together
    assert state.meeting_logged is False


def test_engine_over_sql_stores(db_session, clock, channel):
    a, b = _users(db_session, "Sql Ana", "Sql Ben")
    _link(db_session, a, b)
    engine = ProximityEngine(
        Settings(),
        directory=SqlContactDirectory(SessionLocal),
        locations=SqlLocationStore(SessionLocal),
        history=SqlHistoryStore(SessionLocal),
        alerts=SqlAlertStore(SessionLocal),
        pair_states=SqlPairStateStore(SessionLocal),
        channel=channel,
        clock=clock,
    )
    try:
        for _ in range(7):
            engine.process_location_update(b, LocationSample(b, 10.0, 10.0))
            engine.process_location_update(a, LocationSample(a, 10.0001, 10.0))
            clock.advance(60)
        meetings = engine.meeting_history_of(a)
        assert len(meetings) == 1
        assert meetings[0].participants == (a, b)
        assert len(channel.to(a, "nearby")) == 2  # once, then again after the cooldown

        alert_id = engine.send_emergency(a, 10.0, 10.0)
        assert engine.get_alert(alert_id).deliveries == {b: DeliveryOutcome.ok}
    finally:
        engine.close()


class RacingLocationStore(SqlLocationStore):
    """Holds each writer after its first lookup until every writer has looked."""

    def __init__(self, session_factory, writers):
        super().__init__(session_factory)
        self._barrier = threading.Barrier(writers)
        self._seen = threading.local()

    def _row_for(self, db, user_id):
        row = super()._row_for(db, user_id)
        if not getattr(self._seen, "waited", False):
            self._seen.waited = True
            self._barrier.wait(timeout=5)
        return row


def test_racing_first_updates_both_succeed(db_session, clock):
    (a,) = _users(db_session, "Racer")
    store = RacingLocationStore(SessionLocal, writers=2)
    errors = []

    def write(lat):
        try:
            store.put_location(a, LocationSample(a, lat, 0.0, recorded_at=clock()))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=write, args=(lat,)) for lat in (1.0, 2.0)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert errors == []
    latest = SqlLocationStore(SessionLocal).get_latest_location(a)
    assert latest.latitude in (1.0, 2.0)


def test_sqlite_engine_waits_on_locked_database():
    options = engine_options("sqlite:///./x.db", 2.5)
    assert options["connect_args"] == {"check_same_thread": False, "timeout": 2.5}


def test_server_database_has_pool_and_connect_timeouts():
    options = engine_options("postgresql://u:p@db/proxalert", 2.5)
    assert options["pool_timeout"] == 2.5
    assert options["connect_args"] == {"connect_timeout": 2}
