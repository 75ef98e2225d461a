"""Exceptions raised by the edit statistics engine."""

from __future__ import annotations


class EditStatsError(Exception):
    """Base class for all edit statistics errors."""


class InvalidFilterError(EditStatsError, ValueError):
    """A namespace, redirect or date filter is outside the recognised values."""


class InvalidUsernameError(EditStatsError, ValueError):
    """The supplied username cannot name any account or IP editor."""


class StoreUnavailable(EditStatsError):
    """The replica database could not answer a query.

    ``temporary`` distinguishes failures worth retrying later (lost connection,
    timeout) from permanent ones (malformed statement, missing table).
    """

    temporary = False

    def __init__(self, message: str, shape: str | None = None):
        super().__init__(message)
        self.shape = shape


class TemporaryStoreError(StoreUnavailable):
    temporary = True


class PermanentStoreError(StoreUnavailable):
    temporary = False


class InvariantViolation(EditStatsError, AssertionError):
    """Internally computed totals disagree with each other."""


class PreconditionError(EditStatsError, ValueError):
    """A derived metric was requested for inputs it is undefined on."""
