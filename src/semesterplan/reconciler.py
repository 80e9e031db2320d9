"""Summary: Reconciles parsed import groups against stored reservations.

Importance: Applies the full-replace policy while isolating unresolvable keys.
Alternatives: Merge new intervals into existing appointments by diffing.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from semesterplan.errors import ReservationNotFoundError
from semesterplan.models import Appointment, ImportGroup, Reservation, StoredUser


logger = logging.getLogger(__name__)


class ReservationLookup(ABC):
    """Summary: Resolves a correlation key to an editable reservation.

    Importance: Decouples reconciliation from the storage engine.
    Alternatives: Query the database directly from the reconciler.
    """

    @abstractmethod
    def edit_reservation(self, reservation_id: str) -> Reservation:
        """Summary: Return a private, mutable copy of the reservation.

        Importance: Nothing changes in storage until the batch is committed.
        Alternatives: Hand out live records and rely on rollback.
        """


class BatchStore(ABC):
    """Summary: Commits edited reservations as one unit."""

    @abstractmethod
    def store_and_remove(
        self,
        to_store: list[Reservation],
        to_remove: list[Reservation],
        user: StoredUser,
    ) -> None:
        """Summary: Persist and delete reservations atomically on behalf of a user.

        Importance: Either every accumulated reservation is written or none is.
        Alternatives: Commit each reservation as soon as it is edited.
        """


@dataclass
class ReconciliationOutcome:
    """Summary: Reservations to persist plus keys that could not be processed."""

    reservations: list[Reservation] = field(default_factory=list)
    failed_keys: list[str] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.reservations)


@dataclass(frozen=True)
class ReservationReconciler:
    """Summary: Replaces reservation appointments with the intervals of an import.

    Importance: Keeps resolution failures per key and the commit all-or-nothing.
    Alternatives: Fail the whole import when any key is unknown.
    """

    lookup: ReservationLookup
    batch_store: BatchStore

    def reconcile(self, group: ImportGroup, acting_user: StoredUser) -> ReconciliationOutcome:
        """Summary: Resolve each key and substitute its appointments.

        Importance: Builds the accumulation list handed to the batch commit.
        Alternatives: Resolve all keys first and edit afterwards.
        """

        outcome = ReconciliationOutcome()
        for key, intervals in group.items():
            logger.info("Reconciling reservation %s with %s intervals.", key, len(intervals))
            try:
                reservation = self.lookup.edit_reservation(key)
            except ReservationNotFoundError:
                outcome.failed_keys.append(key)
                logger.error("Error processing reservation - unknown id: %s", key)
                continue
            reservation.clear_appointments()
            for interval in intervals:
                reservation.add_appointment(
                    Appointment(start=interval.start, end=interval.end, owner_id=acting_user.id)
                )
            outcome.reservations.append(reservation)
            logger.info("Replaced appointments of reservation %s from imported ics file.", key)
        if outcome.failed_keys:
            logger.warning(
                "Failed to resolve the following reservation IDs: %s",
                ", ".join(outcome.failed_keys),
            )
        return outcome

    def commit(self, outcome: ReconciliationOutcome, acting_user: StoredUser) -> int:
        """Summary: Hand the accumulated reservations to the batch store in one call.

        Importance: The failure list never reaches storage.
        Alternatives: Retry the commit on transient errors.
        """

        self.batch_store.store_and_remove(list(outcome.reservations), [], acting_user)
        logger.info("Stored %s reservations in one batch.", outcome.success_count)
        return outcome.success_count
