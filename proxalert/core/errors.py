"""Engine error types."""

from __future__ import annotations


class ProxAlertError(Exception):
    """Base class for engine errors."""


class InvalidCoordinates(ProxAlertError, ValueError):
    """Latitude/longitude out of range or non-positive accuracy."""


class Unauthorized(ProxAlertError):
    """Caller is not allowed to act on the resource."""


class AlertNotFound(ProxAlertError, LookupError):
    """No emergency alert with the given id."""


class DeliveryFailed(ProxAlertError):
    """A push channel could not deliver to one recipient."""


class StaleState(ProxAlertError):
    """Pair state that cannot be trusted (e.g. in_range_since in the future)."""
