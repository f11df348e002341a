"""Proximity evaluation through the engine."""

import math

import pytest

from proxalert.core.errors import InvalidCoordinates
from proxalert.core.geo import EARTH_RADIUS_M
from proxalert.services.types import ContactStatus, LocationSample, Proximity

BASE = (40.7128, -74.0060)


def at(user_id, meters_north=0.0, **kw):
    lat = BASE[0] + math.degrees(meters_north / EARTH_RADIUS_M)
    return LocationSample(owner_id=user_id, latitude=lat, longitude=BASE[1], **kw)


@pytest.fixture
def friends(directory):
    directory.add_user(1, "Ana")
    directory.add_user(2, "Ben")
    directory.link(1, 2)


def test_77m_is_nearby_not_meeting(engine, friends, channel):
    engine.process_location_update(2, at(2))
    report = engine.process_location_update(1, at(1, 77))

    assert report.classification_of(2) == Proximity.nearby
    assert report.contacts[0].distance_m == pytest.approx(77, abs=0.5)
    assert report.alerted == [2]
    assert report.meetings == []

    to_ana = channel.to(1, "nearby")
    to_ben = channel.to(2, "nearby")
    assert len(to_ana) == len(to_ben) == 1
    assert to_ana[0]["contact_id"] == 2
    assert to_ana[0]["message"] == "You are near Ben!"
    assert to_ana[0]["distance_m"] == 77
    assert to_ben[0]["message"] == "You are near Ana!"


def test_666m_fires_nothing(engine, friends, channel):
    engine.process_location_update(2, at(2))
    report = engine.process_location_update(1, at(1, 666))

    assert report.classification_of(2) == Proximity.far
    assert report.alerted == []
    assert channel.pushes == []


def test_meeting_distance_classification(engine, friends):
    engine.process_location_update(2, at(2))
    report = engine.process_location_update(1, at(1, 30))
    assert report.classification_of(2) == Proximity.meeting


def test_nearby_alert_respects_cooldown(engine, friends, channel, clock):
    engine.process_location_update(2, at(2))
    engine.process_location_update(1, at(1, 100))
    clock.advance(60)
    assert engine.process_location_update(2, at(2, 10)).alerted == []
    clock.advance(60)
    assert engine.process_location_update(1, at(1, 120)).alerted == []
    assert len(channel.of_type("nearby")) == 2

    clock.advance(301)
    assert engine.process_location_update(1, at(1, 120)).alerted == [2]
    assert len(channel.of_type("nearby")) == 4


def test_contact_without_location_is_skipped(engine, friends, channel):
    report = engine.process_location_update(1, at(1))
    assert report.contacts == []
    assert channel.pushes == []


def test_pending_contacts_are_not_checked(engine, directory, channel):
    directory.add_user(1, "Ana")
    directory.add_user(3, "Cy")
    directory.link(1, 3, ContactStatus.pending)
    engine.process_location_update(3, at(3))
    report = engine.process_location_update(1, at(1, 10))
    assert report.contacts == []
    assert channel.pushes == []


def test_ghost_user_is_invisible_both_ways(engine, friends, directory, channel):
    directory.set_ghost_mode(1, True)
    engine.process_location_update(2, at(2))
    assert engine.process_location_update(1, at(1, 10)).contacts == []
    assert engine.process_location_update(2, at(2)).contacts == []
    assert channel.of_type("nearby") == []


def test_on_location_update_returns_future(engine, friends, channel):
    engine.process_location_update(2, at(2))
    future = engine.on_location_update(1, at(1, 77))
    report = future.result(timeout=5)
    assert report.alerted == [2]
    assert len(channel.of_type("nearby")) == 2


def test_invalid_coordinates_have_no_side_effects(engine, friends, channel):
    engine.process_location_update(2, at(2))
    bad = LocationSample(owner_id=1, latitude=95.0, longitude=0.0)
    with pytest.raises(InvalidCoordinates):
        engine.on_location_update(1, bad)
    with pytest.raises(InvalidCoordinates):
        engine.process_location_update(1, bad)
    assert engine.ledger.latest(1) is None
    assert channel.pushes == []


def test_meeting_logged_once_for_long_episode(engine, friends, history, clock):
    for _ in range(12):
        engine.process_location_update(2, at(2))
        engine.process_location_update(1, at(1, 5))
        clock.advance(60)

    records = history.all()
    assert len(records) == 1
    assert records[0].participants == (1, 2)
    assert records[0].duration_ms == 5 * 60 * 1000
    assert engine.meeting_history_of(1) == records
    assert engine.meeting_history_of(2) == records


def test_stale_contact_location_prevents_meeting(engine, friends, history, clock):
    engine.process_location_update(2, at(2))
    clock.advance(480)
    for _ in range(12):
        engine.process_location_update(1, at(1, 5))
        clock.advance(60)
    assert history.all() == []


def test_ghost_toggle_resets_episode(engine, friends, directory, history, clock):
    for _ in range(3):
        engine.process_location_update(2, at(2))
        engine.process_location_update(1, at(1, 5))
        clock.advance(60)
    directory.set_ghost_mode(1, True)
    engine.reset_pairs_of(1)
    directory.set_ghost_mode(1, False)
    for _ in range(3):
        engine.process_location_update(2, at(2))
        engine.process_location_update(1, at(1, 5))
        clock.advance(60)
    assert history.all() == []


def test_friend_locations_and_meeting_point(engine, friends, directory):
    directory.add_user(3, "Cy", ghost_mode=True)
    directory.link(1, 3)
    engine.process_location_update(2, at(2, 100))
    engine.process_location_update(3, at(3, 50))
    engine.process_location_update(1, at(1))

    friends_seen = engine.friend_locations(1)
    assert [profile.id for profile, _ in friends_seen] == [2]

    lat, lon = engine.meeting_point(1, 2)
    assert lat == pytest.approx(BASE[0] + math.degrees(50 / EARTH_RADIUS_M))
    assert lon == pytest.approx(BASE[1])
    with pytest.raises(LookupError):
        engine.meeting_point(1, 3)
