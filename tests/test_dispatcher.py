"""Notification dispatcher tests."""

import threading

import pytest

from proxalert.core.errors import DeliveryFailed
from proxalert.services.dispatcher import NotificationDispatcher
from proxalert.services.types import DeliveryOutcome


class SlowChannel:
    def __init__(self) -> None:
        self.release = threading.Event()

    def push(self, recipient_id, payload):
        self.release.wait(5)
        return DeliveryOutcome.ok


class BrokenChannel:
    def push(self, recipient_id, payload):
        if recipient_id == 2:
            raise DeliveryFailed("gone")
        if recipient_id == 3:
            raise RuntimeError("boom")
        return DeliveryOutcome.ok


@pytest.fixture
def dispatcher(channel):
    d = NotificationDispatcher(channel, timeout=1.0, max_workers=4)
    yield d
    d.close()


def test_deliver_ok(dispatcher, channel):
    assert dispatcher.deliver(1, {"type": "nearby"}) == DeliveryOutcome.ok
    assert channel.to(1) == [{"type": "nearby"}]


def test_no_channel_is_reported(dispatcher, channel):
    channel.offline.add(5)
    assert dispatcher.deliver(5, {"type": "sos"}) == DeliveryOutcome.no_channel


def test_failures_are_isolated():
    d = NotificationDispatcher(BrokenChannel(), timeout=1.0, max_workers=4)
    try:
        outcomes = d.deliver_many([1, 2, 3, 4], {"type": "sos"})
    finally:
        d.close()
    assert outcomes == {
        1: DeliveryOutcome.ok,
        2: DeliveryOutcome.failed,
        3: DeliveryOutcome.failed,
        4: DeliveryOutcome.ok,
    }
    assert d.stats == {"ok": 2, "failed": 2}


def test_timeout_counts_as_failed():
    channel = SlowChannel()
    d = NotificationDispatcher(channel, timeout=0.05, max_workers=2)
    try:
        assert d.deliver(1, {"type": "nearby"}) == DeliveryOutcome.failed
    finally:
        channel.release.set()
        d.close()


class HangOnFirst:
    """The first push blocks until released; later ones are recorded."""

    def __init__(self) -> None:
        self.release = threading.Event()
        self.pushed: list[int] = []
        self._first = True

    def push(self, recipient_id, payload):
        if self._first:
            self._first = False
            self.release.wait(5)
        self.pushed.append(recipient_id)
        return DeliveryOutcome.ok


def test_queued_pushes_reported_failed_are_never_sent():
    channel = HangOnFirst()
    d = NotificationDispatcher(channel, timeout=0.1, max_workers=1)
    try:
        outcomes = d.deliver_many([1, 2, 3], {"type": "sos"})
        assert outcomes == {1: DeliveryOutcome.failed, 2: DeliveryOutcome.failed, 3: DeliveryOutcome.failed}

        channel.release.set()
        # Runs on the single worker only after everything queued before it
        assert d.deliver(4, {"type": "sos"}) == DeliveryOutcome.ok
    finally:
        channel.release.set()
        d.close()
    assert channel.pushed == [1, 4]
