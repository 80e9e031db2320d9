"""Summary: Tests for reservation reconciliation.

Importance: Ensures full-replace semantics and per-key failure isolation.
Alternatives: Exercise reconciliation only against SQLite.
"""

from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone

import pytest

from semesterplan.errors import InsufficientRightsError, ReservationNotFoundError
from semesterplan.models import (
    Appointment,
    ImportGroup,
    NormalizedInterval,
    Reservation,
    StoredUser,
)
from semesterplan.reconciler import BatchStore, ReservationLookup, ReservationReconciler

ACTING_USER = StoredUser(id=7, display_name="Planer", email="planer@example.com", is_admin=True)


class _MemoryStore(ReservationLookup, BatchStore):
    def __init__(self, reservations: list[Reservation], refuse: bool = False) -> None:
        self.reservations = {reservation.id: reservation for reservation in reservations}
        self.batches: list[tuple[list[Reservation], list[Reservation], StoredUser]] = []
        self.refuse = refuse

    def edit_reservation(self, reservation_id: str) -> Reservation:
        if reservation_id not in self.reservations:
            raise ReservationNotFoundError(reservation_id)
        return copy.deepcopy(self.reservations[reservation_id])

    def store_and_remove(
        self, to_store: list[Reservation], to_remove: list[Reservation], user: StoredUser
    ) -> None:
        if self.refuse:
            raise InsufficientRightsError("read only")
        self.batches.append((to_store, to_remove, user))


def _interval(day: int) -> NormalizedInterval:
    start = datetime(2021, 7, day, 14, 0, tzinfo=timezone.utc)
    return NormalizedInterval(start=start, end=start + timedelta(hours=1))


def _placeholder(day: int) -> Appointment:
    start = datetime(2021, 6, day, 9, 0, tzinfo=timezone.utc)
    return Appointment(start=start, end=start + timedelta(hours=2), owner_id=1)


def test_existing_appointments_are_fully_replaced() -> None:
    """Summary: Three placeholders are replaced by two imported intervals.

    Importance: Confirms the import never merges with old appointments.
    Alternatives: Diff existing and imported appointments.
    """

    store = _MemoryStore(
        [Reservation(id="1", name="Mathe", owner_id=1, appointments=[_placeholder(1), _placeholder(2), _placeholder(3)])]
    )
    group = ImportGroup()
    group.add("1", _interval(2))
    group.add("1", _interval(3))
    outcome = ReservationReconciler(lookup=store, batch_store=store).reconcile(group, ACTING_USER)
    assert outcome.success_count == 1
    appointments = outcome.reservations[0].appointments
    assert [appointment.start for appointment in appointments] == [
        _interval(2).start,
        _interval(3).start,
    ]
    assert all(appointment.owner_id == ACTING_USER.id for appointment in appointments)
    assert len(store.reservations["1"].appointments) == 3


def test_unknown_key_does_not_block_other_keys() -> None:
    store = _MemoryStore(
        [
            Reservation(id="1", name="Mathe", owner_id=1),
            Reservation(id="2", name="Physik", owner_id=1),
        ]
    )
    group = ImportGroup()
    group.add("1", _interval(2))
    group.add("missing", _interval(3))
    group.add("2", _interval(4))
    outcome = ReservationReconciler(lookup=store, batch_store=store).reconcile(group, ACTING_USER)
    assert [reservation.id for reservation in outcome.reservations] == ["1", "2"]
    assert outcome.failed_keys == ["missing"]


def test_key_without_intervals_still_clears_reservation() -> None:
    store = _MemoryStore([Reservation(id="1", name="Mathe", owner_id=1, appointments=[_placeholder(1)])])
    group = ImportGroup(intervals={"1": []})
    outcome = ReservationReconciler(lookup=store, batch_store=store).reconcile(group, ACTING_USER)
    assert outcome.success_count == 1
    assert outcome.reservations[0].appointments == []


def test_commit_sends_one_batch_without_failed_keys() -> None:
    """Summary: All reconciled reservations are committed in a single call.

    Importance: Keeps the commit atomic and the failure list out of storage.
    Alternatives: Commit each reservation separately.
    """

    store = _MemoryStore([Reservation(id="1", name="Mathe", owner_id=1)])
    reconciler = ReservationReconciler(lookup=store, batch_store=store)
    group = ImportGroup()
    group.add("1", _interval(2))
    group.add("unknown", _interval(3))
    outcome = reconciler.reconcile(group, ACTING_USER)
    assert reconciler.commit(outcome, ACTING_USER) == 1
    assert len(store.batches) == 1
    stored, removed, user = store.batches[0]
    assert [reservation.id for reservation in stored] == ["1"]
    assert removed == []
    assert user == ACTING_USER


def test_commit_propagates_insufficient_rights() -> None:
    store = _MemoryStore([Reservation(id="1", name="Mathe", owner_id=1)], refuse=True)
    reconciler = ReservationReconciler(lookup=store, batch_store=store)
    group = ImportGroup()
    group.add("1", _interval(2))
    outcome = reconciler.reconcile(group, ACTING_USER)
    with pytest.raises(InsufficientRightsError):
        reconciler.commit(outcome, ACTING_USER)
