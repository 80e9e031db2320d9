"""Summary: Domain model dataclasses for semesterplan imports.

Importance: Defines the entities shared by the parser, reconciler and storage.
Alternatives: Use Pydantic models or ORM classes directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class User:
    """Summary: Represents a user that can own and edit reservations.

    Importance: Appointments created by an import are owned by the acting user.
    Alternatives: Record only a user name string on each appointment.
    """

    display_name: str
    email: str
    is_admin: bool = False


@dataclass(frozen=True)
class StoredUser:
    """Summary: User record with database identifier.

    Importance: Identifies the acting user for ownership and permission checks.
    Alternatives: Pass bare user IDs between layers.
    """

    id: int
    display_name: str
    email: str
    is_admin: bool = False


@dataclass(frozen=True)
class NormalizedInterval:
    """Summary: A start and end instant produced from one VEVENT.

    Importance: Carries the shifted timestamps from parsing into reconciliation.
    Alternatives: Pass raw DTSTART/DTEND strings through to storage.
    """

    start: datetime
    end: datetime


@dataclass(frozen=True)
class SkippedEvent:
    """Summary: Records why a VEVENT contributed no interval.

    Importance: Keeps per-event failures observable instead of discarding them.
    Alternatives: Log and forget skipped events.
    """

    index: int
    reason: str
    correlation_key: str | None = None


@dataclass
class ImportGroup:
    """Summary: Intervals grouped by correlation key in document order.

    Importance: Hands the parsed upload to the reconciler one reservation at a time.
    Alternatives: Return a flat list of events and group during reconciliation.
    """

    intervals: dict[str, list[NormalizedInterval]] = field(default_factory=dict)
    skipped: list[SkippedEvent] = field(default_factory=list)

    def add(self, key: str, interval: NormalizedInterval) -> None:
        self.intervals.setdefault(key, []).append(interval)

    def keys(self) -> list[str]:
        return list(self.intervals)

    def items(self) -> list[tuple[str, list[NormalizedInterval]]]:
        return list(self.intervals.items())

    def __len__(self) -> int:
        return len(self.intervals)


@dataclass(frozen=True)
class Appointment:
    """Summary: A single scheduled interval belonging to a reservation."""

    start: datetime
    end: datetime
    owner_id: int | None = None


@dataclass
class Reservation:
    """Summary: A reservation record that owns a set of appointments.

    Importance: The unit being reconciled; instances handed out for editing are private copies.
    Alternatives: Mutate rows in place through the storage layer.
    """

    id: str
    name: str
    owner_id: int | None
    appointments: list[Appointment] = field(default_factory=list)

    def add_appointment(self, appointment: Appointment) -> None:
        self.appointments.append(appointment)

    def remove_appointment(self, appointment: Appointment) -> None:
        self.appointments.remove(appointment)

    def clear_appointments(self) -> None:
        """Summary: Remove every appointment from the reservation."""

        for appointment in list(self.appointments):
            self.remove_appointment(appointment)
