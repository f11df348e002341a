"""Meeting detection: log pairs that stay within meeting distance long enough.

Per pair there are two states, Apart (in_range_since is None) and Together.
Duration is measured from timestamps, not from the number of updates, so
sparse updates still work; a brief excursion between two updates can go
unnoticed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from proxalert.core.errors import StaleState
from proxalert.core.geo import midpoint
from proxalert.services.locks import KeyedLocks
from proxalert.services.stores import HistoryStore, PairStateStore
from proxalert.services.types import LocationSample, MeetingRecord, PairState, pair_members

logger = logging.getLogger(__name__)


class MeetingDetector:
    def __init__(
        self,
        store: PairStateStore,
        history: HistoryStore,
        locks: KeyedLocks,
        threshold_m: float,
        duration: timedelta,
    ) -> None:
        self._store = store
        self._history = history
        self._locks = locks
        self._threshold_m = threshold_m
        self._duration = duration

    def _load(self, pair_key: str, now: datetime) -> PairState:
        state = self._store.get(pair_key) or PairState(pair_key=pair_key)
        try:
            self._check(state, now)
        except StaleState as e:
            logger.warning("Resetting pair %s: %s", pair_key, e)
            state.in_range_since = None
            state.meeting_logged = False
        return state

    @staticmethod
    def _check(state: PairState, now: datetime) -> None:
        if state.in_range_since is not None and state.in_range_since > now:
            raise StaleState(f"in_range_since {state.in_range_since.isoformat()} is in the future")

    def observe(
        self,
        pair_key: str,
        distance_m: float,
        now: datetime,
        sample_a: LocationSample,
        sample_b: LocationSample,
        fresh: bool = True,
    ) -> MeetingRecord | None:
        """Feed one distance observation; returns a stored record when one is emitted."""
        with self._locks.hold(pair_key):
            state = self._load(pair_key, now)
            state.last_evaluated_at = now

            if not fresh or distance_m > self._threshold_m:
                if state.together:
                    logger.debug("Pair %s apart (distance=%.1fm, fresh=%s)", pair_key, distance_m, fresh)
                state.in_range_since = None
                state.meeting_logged = False
                self._store.put(state)
                return None

            if not state.together:
                state.in_range_since = now
                state.meeting_logged = False
                self._store.put(state)
                return None

            elapsed = now - state.in_range_since
            if state.meeting_logged or elapsed < self._duration:
                self._store.put(state)
                return None

            lat, lon = midpoint(sample_a.latitude, sample_a.longitude, sample_b.latitude, sample_b.longitude)
            record = self._history.append_meeting_record(
                MeetingRecord(
                    participants=pair_members(pair_key),
                    started_at=state.in_range_since,
                    duration_ms=int(elapsed.total_seconds() * 1000),
                    latitude=lat,
                    longitude=lon,
                    created_at=now,
                )
            )
            state.meeting_logged = True
            self._store.put(state)

        logger.info(
            "Meeting logged between %s and %s (%.0fs)",
            record.participants[0],
            record.participants[1],
            elapsed.total_seconds(),
        )
        return record

    def reset(self, pair_key: str) -> None:
        """Force a pair back to Apart (e.g. a member switched to ghost mode)."""
        with self._locks.hold(pair_key):
            state = self._store.get(pair_key)
            if state and state.together:
                state.in_range_since = None
                state.meeting_logged = False
                self._store.put(state)
