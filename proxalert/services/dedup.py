"""Nearby-alert cooldown per unordered pair."""

from __future__ import annotations

from datetime import datetime, timedelta

from proxalert.services.locks import KeyedLocks
from proxalert.services.stores import PairStateStore
from proxalert.services.types import PairState


class AlertDeduplicator:
    """At most one nearby alert per pair per cooldown window.

    `last_alert_at` is written before the caller notifies, under the pair
    lock, so two concurrent updates from both members of a pair cannot both
    pass the check.
    """

    def __init__(self, store: PairStateStore, locks: KeyedLocks, cooldown: timedelta) -> None:
        self._store = store
        self._locks = locks
        self._cooldown = cooldown

    def should_alert(self, pair_key: str, now: datetime) -> bool:
        with self._locks.hold(pair_key):
            state = self._store.get(pair_key) or PairState(pair_key=pair_key)
            last = state.last_alert_at
            # A last_alert_at in the future is corrupt and counts as absent
            if last is not None and last <= now and now - last <= self._cooldown:
                return False
            state.last_alert_at = now
            self._store.put(state)
            return True
