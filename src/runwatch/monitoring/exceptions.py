"""Exceptions raised by the live monitoring layer."""

from __future__ import annotations


class MonitoringError(RuntimeError):
    """Base class for monitoring failures."""


class DeliveryFailure(MonitoringError):
    """Raised when a message cannot be handed to a subscriber."""


class PubSubUnavailableError(MonitoringError):
    """Raised when the shared update channel cannot be reached."""
