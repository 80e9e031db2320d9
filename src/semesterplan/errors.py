"""Summary: Exception hierarchy for the semesterplan import pipeline.

Importance: Lets each layer distinguish fatal from per-event and per-key failures.
Alternatives: Raise ValueError everywhere and inspect messages.
"""

from __future__ import annotations


class SemesterplanError(Exception):
    """Summary: Base class for all import pipeline errors."""


class UnauthorizedError(SemesterplanError):
    """Summary: Raised when the caller cannot be resolved to a user.

    Importance: Stops an import before any parsing work is done.
    Alternatives: Treat anonymous callers as a guest user.
    """


class MalformedDocumentError(SemesterplanError):
    """Summary: Raised when the upload is not an iCalendar document at all.

    Importance: Separates fatal syntax errors from skippable event defects.
    Alternatives: Return an empty group for unreadable input.
    """


class TimestampParseError(SemesterplanError, ValueError):
    """Summary: Raised when a timestamp does not match the basic UTC format.

    Importance: Lets the parser skip a single event without aborting the document.
    Alternatives: Return None and lose the reason.
    """


class ReservationNotFoundError(SemesterplanError, LookupError):
    """Summary: Raised when a correlation key resolves to no reservation."""

    def __init__(self, reservation_id: str) -> None:
        super().__init__(f"Reservation {reservation_id} not found")
        self.reservation_id = reservation_id


class InsufficientRightsError(SemesterplanError):
    """Summary: Raised when the acting user may not write a reservation.

    Importance: Maps to a forbidden response instead of a generic failure.
    Alternatives: Silently drop reservations the user does not own.
    """


class StorageError(SemesterplanError):
    """Summary: Raised for any other failure while committing a batch."""
