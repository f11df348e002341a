"""Notification dispatcher: best-effort delivery through a push channel."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any

from proxalert.core.errors import DeliveryFailed
from proxalert.services.stores import PushChannel
from proxalert.services.types import DeliveryOutcome

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Delivers events to recipients; never retries, never raises.

    Every push runs on a bounded worker pool and is abandoned after `timeout`
    seconds (reported as failed). A timed-out push that never started is
    cancelled; one already running keeps its worker until the channel returns.
    """

    def __init__(self, channel: PushChannel, timeout: float, max_workers: int) -> None:
        self._channel = channel
        self._timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="dispatch")
        self._stats_lock = threading.Lock()
        self._stats: Counter[str] = Counter()

    def _count(self, outcome: DeliveryOutcome) -> DeliveryOutcome:
        with self._stats_lock:
            self._stats[outcome.value] += 1
        return outcome

    def _push(self, recipient_id: int, event: dict[str, Any]) -> DeliveryOutcome:
        outcome = self._channel.push(recipient_id, event)
        return DeliveryOutcome(outcome)

    def _collect(self, recipient_id: int, event: dict[str, Any], future: Future) -> DeliveryOutcome:
        try:
            outcome = future.result(timeout=self._timeout)
        except FutureTimeout:
            # A push still waiting in the queue is dropped so a failed outcome is never delivered late
            if future.cancel():
                logger.warning("Push to %s dropped before it started (%s)", recipient_id, event.get("type"))
            else:
                logger.warning("Push to %s timed out (%s)", recipient_id, event.get("type"))
            return self._count(DeliveryOutcome.failed)
        except DeliveryFailed as e:
            logger.warning("Push to %s failed (%s): %s", recipient_id, event.get("type"), e)
            return self._count(DeliveryOutcome.failed)
        except Exception:
            logger.exception("Push to %s raised (%s)", recipient_id, event.get("type"))
            return self._count(DeliveryOutcome.failed)
        if outcome == DeliveryOutcome.no_channel:
            logger.debug("No push channel for user %s", recipient_id)
        return self._count(outcome)

    def deliver(self, recipient_id: int, event: dict[str, Any]) -> DeliveryOutcome:
        """Deliver one event to one recipient."""
        future = self._executor.submit(self._push, recipient_id, event)
        return self._collect(recipient_id, event, future)

    def deliver_many(self, recipient_ids: Iterable[int], event: dict[str, Any]) -> dict[int, DeliveryOutcome]:
        """Fan one event out to many recipients concurrently."""
        futures = {rid: self._executor.submit(self._push, rid, event) for rid in recipient_ids}
        return {rid: self._collect(rid, event, f) for rid, f in futures.items()}

    @property
    def stats(self) -> dict[str, int]:
        with self._stats_lock:
            return dict(self._stats)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
