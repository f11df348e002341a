"""Proximity and SOS policy constants."""

from __future__ import annotations

# Distance at which a contact counts as "nearby" (meters)
NEARBY_THRESHOLD_M = 500.0

# Distance at which a pair counts as meeting in person (meters)
MEETING_THRESHOLD_M = 50.0

# How long a pair must stay within meeting distance before it is logged
MEETING_DURATION_SECONDS = 5 * 60

# Minimum time between two nearby alerts for the same pair
ALERT_COOLDOWN_SECONDS = 5 * 60

# A location older than this no longer counts for meeting detection
STALE_LOCATION_SECONDS = 10 * 60

# Rolling window of recent samples kept per user
LEDGER_LOOKBACK_SECONDS = 10 * 60

# Push calls slower than this are treated as failed
DISPATCH_TIMEOUT_SECONDS = 3.0

# Wait on a locked database or a pooled connection before giving up
DB_TIMEOUT_SECONDS = 5.0

# Worker pool sizes
DISPATCH_WORKERS = 8
EVALUATION_WORKERS = 4

# Meeting history page size
HISTORY_LIMIT = 50

DEFAULT_SOS_MESSAGE = "I need help! This is an emergency!"
