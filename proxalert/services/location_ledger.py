"""Location ledger: latest fix per user plus a short rolling window."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import replace
from datetime import datetime, timedelta

from proxalert.core.geo import validate_coordinates
from proxalert.services.stores import LocationStore
from proxalert.services.types import LocationSample


class LocationLedger:
    """Records location samples.

    The latest sample goes to the location store (last write wins, in server
    receipt order). The recent window is process-local and bounded by
    `lookback`; it only feeds meeting detection, so losing it on restart just
    delays the next logged meeting.
    """

    def __init__(
        self,
        store: LocationStore,
        lookback: timedelta,
        stale_after: timedelta,
    ) -> None:
        self._store = store
        self._lookback = lookback
        self._stale_after = stale_after
        self._lock = threading.Lock()
        self._windows: dict[int, deque[LocationSample]] = {}

    def record(self, user_id: int, sample: LocationSample, now: datetime) -> LocationSample:
        """Validate, stamp and store a sample. Raises InvalidCoordinates."""
        validate_coordinates(sample.latitude, sample.longitude, sample.accuracy)
        stamped = replace(sample, owner_id=user_id, recorded_at=now)
        self._store.put_location(user_id, stamped)
        with self._lock:
            window = self._windows.setdefault(user_id, deque())
            window.append(stamped)
            self._trim(window, now)
        return stamped

    def _trim(self, window: deque[LocationSample], now: datetime) -> None:
        cutoff = now - self._lookback
        while window and window[0].recorded_at is not None and window[0].recorded_at < cutoff:
            window.popleft()

    def latest(self, user_id: int) -> LocationSample | None:
        return self._store.get_latest_location(user_id)

    def recent_window(self, user_id: int, now: datetime | None = None) -> list[LocationSample]:
        """Samples within the lookback, oldest first. Always a fresh list."""
        with self._lock:
            window = self._windows.get(user_id)
            if not window:
                return []
            if now is not None:
                self._trim(window, now)
            return list(window)

    def is_fresh(self, user_id: int, now: datetime) -> bool:
        """Whether the user reported recently enough to count for meetings.

        Judged from the recent window, so a position that only survives in the
        store (e.g. after a restart) is stale until the next update arrives.
        """
        window = self.recent_window(user_id, now)
        if not window:
            return False
        return now - window[-1].recorded_at <= self._stale_after

    def purge(self, user_id: int) -> None:
        """Forget everything about a user (account deletion)."""
        with self._lock:
            self._windows.pop(user_id, None)
        self._store.delete_location(user_id)
