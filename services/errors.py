"""Exception hierarchy for the relay services."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for errors raised by the relay services."""


class ValidationError(RelayError):
    """A submission is missing a required field; nothing was stored."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class DeliveryError(RelayError):
    """An event could not be handed to a subscriber connection."""

    def __init__(self, subscriber_id: str, reason: str) -> None:
        super().__init__(f"Delivery to subscriber {subscriber_id!r} failed: {reason}")
        self.subscriber_id = subscriber_id
        self.reason = reason
