"""Error types raised by the event budget engines and collaborators."""

from __future__ import annotations


class EventBudgetError(Exception):
    """Base class for all package errors."""


class ValidationError(EventBudgetError):
    """Input rejected locally; nothing was sent to a collaborator."""


class InvalidAmount(ValidationError):
    """Text that does not parse as a decimal currency amount."""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"'{text}' is not a valid amount")


class PersistenceError(EventBudgetError):
    """The data store rejected a read or write."""


class UploadError(EventBudgetError):
    """A receipt was rejected locally or the storage upload failed."""


class InvalidTransition(EventBudgetError):
    """An inline-edit operation was attempted from the wrong state."""


class MalformedRecord(PersistenceError):
    """A stored row could not be converted into a domain record."""
