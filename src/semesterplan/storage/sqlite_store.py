"""Summary: SQLite storage implementation for semesterplan.

Importance: Provides reservation lookup and atomic batch persistence for imports.
Alternatives: Use an ORM or an external database immediately.
"""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator

from semesterplan.errors import InsufficientRightsError, ReservationNotFoundError, StorageError
from semesterplan.models import Appointment, Reservation, StoredUser, User
from semesterplan.reconciler import BatchStore, ReservationLookup


@dataclass(frozen=True)
class StoredApiToken:
    """Summary: API token record with database identifier.

    Importance: Supports listing and revoking per-user tokens.
    Alternatives: Keep tokens only in configuration.
    """

    id: int
    user_id: int
    token_hash: str
    label: str | None
    created_at: str


class SqliteStore(ReservationLookup, BatchStore):
    """Summary: SQLite-backed storage for users, tokens and reservations.

    Importance: Enables local-first persistence with minimal dependencies.
    Alternatives: Use Postgres and SQLAlchemy from day one.
    """

    def __init__(self, db_path: str) -> None:
        """Summary: Initialize the storage with a database path.

        Importance: Allows configurable database location per environment.
        Alternatives: Hardcode a default path in the class.
        """

        self._db_path = Path(db_path)

    def initialize(self) -> None:
        """Summary: Create tables if they do not exist.

        Importance: Ensures the database is ready for imports and queries.
        Alternatives: Run migrations using a dedicated migration tool.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    display_name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    is_admin INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS api_tokens (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    token_hash TEXT NOT NULL UNIQUE,
                    label TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS reservations (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    owner_id INTEGER
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS appointments (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    reservation_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    start_time TEXT NOT NULL,
                    end_time TEXT NOT NULL,
                    owner_id INTEGER
                )
                """
            )
            connection.commit()
        self._ensure_column("users", "is_admin")

    def ensure_user(self, user: User) -> int:
        """Summary: Ensure a user exists and return their ID.

        Importance: Provides a stable user record for reservation ownership.
        Alternatives: Omit user records in single-user mode.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "INSERT OR IGNORE INTO users (display_name, email, is_admin) VALUES (?, ?, ?)",
                (user.display_name, user.email, int(user.is_admin)),
            )
            if cursor.rowcount:
                user_id = cursor.lastrowid
            else:
                cursor.execute("SELECT id FROM users WHERE email = ?", (user.email,))
                row = cursor.fetchone()
                user_id = int(row[0]) if row else 0
            connection.commit()
        return int(user_id)

    def get_user(self, user_id: int) -> StoredUser | None:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "SELECT id, display_name, email, is_admin FROM users WHERE id = ?",
                (user_id,),
            )
            row = cursor.fetchone()
        return _user_from_row(row) if row else None

    def get_user_by_email(self, email: str) -> StoredUser | None:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "SELECT id, display_name, email, is_admin FROM users WHERE email = ?",
                (email,),
            )
            row = cursor.fetchone()
        return _user_from_row(row) if row else None

    def list_users(self) -> list[StoredUser]:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("SELECT id, display_name, email, is_admin FROM users ORDER BY id")
            rows = cursor.fetchall()
        return [_user_from_row(row) for row in rows]

    def create_api_token(
        self, user_id: int, token_hash: str, label: str | None, created_at: str
    ) -> int:
        """Summary: Persist a hashed API token for a user.

        Importance: Backs the identity check performed before each import.
        Alternatives: Store raw tokens in the database.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                INSERT INTO api_tokens (user_id, token_hash, label, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (user_id, token_hash, label, created_at),
            )
            token_id = cursor.lastrowid
            connection.commit()
        return int(token_id)

    def get_user_id_by_token(self, token_hash: str) -> int | None:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("SELECT user_id FROM api_tokens WHERE token_hash = ?", (token_hash,))
            row = cursor.fetchone()
        return int(row[0]) if row else None

    def list_api_tokens(self, user_id: int) -> list[StoredApiToken]:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                SELECT id, user_id, token_hash, label, created_at
                FROM api_tokens
                WHERE user_id = ?
                ORDER BY id
                """,
                (user_id,),
            )
            rows = cursor.fetchall()
        return [StoredApiToken(*row) for row in rows]

    def delete_api_token(self, user_id: int, token_id: int) -> bool:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "DELETE FROM api_tokens WHERE id = ? AND user_id = ?",
                (token_id, user_id),
            )
            deleted = cursor.rowcount > 0
            connection.commit()
        return deleted

    def create_reservation(
        self, name: str, owner_id: int | None, reservation_id: str | None = None
    ) -> str:
        """Summary: Create an empty reservation and return its ID.

        Importance: Reservations must exist before an upload can fill them.
        Alternatives: Create reservations implicitly on first import.
        """

        reservation_id = reservation_id or uuid.uuid4().hex
        with self._connection() as connection:
            cursor = connection.cursor()
            try:
                cursor.execute(
                    "INSERT INTO reservations (id, name, owner_id) VALUES (?, ?, ?)",
                    (reservation_id, name, owner_id),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError(f"Reservation {reservation_id} already exists") from exc
            connection.commit()
        return reservation_id

    def get_reservation(self, reservation_id: str) -> Reservation | None:
        """Summary: Load a reservation with its appointments in stored order.

        Importance: Supplies both the API views and the import edit handles.
        Alternatives: Load appointments lazily on access.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "SELECT id, name, owner_id FROM reservations WHERE id = ?",
                (reservation_id,),
            )
            row = cursor.fetchone()
            if not row:
                return None
            appointments = self._load_appointments(cursor, reservation_id)
        return Reservation(id=row[0], name=row[1], owner_id=row[2], appointments=appointments)

    def list_reservations(self, limit: int) -> list[Reservation]:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "SELECT id, name, owner_id FROM reservations ORDER BY name, id LIMIT ?",
                (limit,),
            )
            rows = cursor.fetchall()
            return [
                Reservation(
                    id=row[0],
                    name=row[1],
                    owner_id=row[2],
                    appointments=self._load_appointments(cursor, row[0]),
                )
                for row in rows
            ]

    def edit_reservation(self, reservation_id: str) -> Reservation:
        """Summary: Return a detached copy of a reservation for editing.

        Importance: Edits stay in memory until store_and_remove commits them.
        Alternatives: Lock the row for the duration of the import.
        """

        if not reservation_id:
            raise ReservationNotFoundError(reservation_id)
        try:
            reservation = self.get_reservation(reservation_id)
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to load reservation {reservation_id}: {exc}") from exc
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        return reservation

    def store_and_remove(
        self,
        to_store: list[Reservation],
        to_remove: list[Reservation],
        user: StoredUser,
    ) -> None:
        """Summary: Write and delete reservations in a single transaction.

        Importance: Guarantees an import is committed completely or not at all.
        Alternatives: Commit reservation by reservation.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            try:
                for reservation in [*to_store, *to_remove]:
                    self._check_write_permission(cursor, reservation, user)
                self._write_batch(cursor, to_store, to_remove, user)
                connection.commit()
            except sqlite3.Error as exc:
                connection.rollback()
                raise StorageError(f"Failed to store reservations: {exc}") from exc

    def _write_batch(
        self,
        cursor: sqlite3.Cursor,
        to_store: list[Reservation],
        to_remove: list[Reservation],
        user: StoredUser,
    ) -> None:
        for reservation in to_store:
            cursor.execute(
                """
                INSERT INTO reservations (id, name, owner_id) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET name = excluded.name
                """,
                (
                    reservation.id,
                    reservation.name,
                    reservation.owner_id if reservation.owner_id is not None else user.id,
                ),
            )
            cursor.execute(
                "DELETE FROM appointments WHERE reservation_id = ?", (reservation.id,)
            )
            cursor.executemany(
                """
                INSERT INTO appointments (
                    reservation_id, position, start_time, end_time, owner_id
                ) VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (
                        reservation.id,
                        position,
                        appointment.start.isoformat(),
                        appointment.end.isoformat(),
                        appointment.owner_id,
                    )
                    for position, appointment in enumerate(reservation.appointments)
                ],
            )
        for reservation in to_remove:
            cursor.execute(
                "DELETE FROM appointments WHERE reservation_id = ?", (reservation.id,)
            )
            cursor.execute("DELETE FROM reservations WHERE id = ?", (reservation.id,))

    def _check_write_permission(
        self, cursor: sqlite3.Cursor, reservation: Reservation, user: StoredUser
    ) -> None:
        """Summary: Reject writes to reservations owned by someone else.

        Importance: Non-admin users may only modify their own reservations.
        Alternatives: Model fine-grained permission groups.
        """

        if user.is_admin:
            return
        cursor.execute("SELECT owner_id FROM reservations WHERE id = ?", (reservation.id,))
        row = cursor.fetchone()
        owner_id = row[0] if row else reservation.owner_id
        if owner_id is not None and owner_id != user.id:
            raise InsufficientRightsError(
                f"User {user.email} may not modify reservation {reservation.id}"
            )

    def _load_appointments(self, cursor: sqlite3.Cursor, reservation_id: str) -> list[Appointment]:
        cursor.execute(
            """
            SELECT start_time, end_time, owner_id
            FROM appointments
            WHERE reservation_id = ?
            ORDER BY position
            """,
            (reservation_id,),
        )
        return [
            Appointment(
                start=datetime.fromisoformat(start),
                end=datetime.fromisoformat(end),
                owner_id=owner_id,
            )
            for start, end, owner_id in cursor.fetchall()
        ]

    def _ensure_column(self, table: str, column: str) -> None:
        """Summary: Ensure a column exists in a table.

        Importance: Provides lightweight migration support for new fields.
        Alternatives: Use a migration tool to manage schema changes.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(f"PRAGMA table_info({table})")
            columns = {row[1] for row in cursor.fetchall()}
            if column in columns:
                return
            cursor.execute(f"ALTER TABLE {table} ADD COLUMN {column} INTEGER NOT NULL DEFAULT 0")
            connection.commit()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Summary: Context manager for SQLite connections.

        Importance: Ensures connections are closed cleanly after use.
        Alternatives: Keep a single long-lived connection.
        """

        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
        finally:
            connection.close()


def _user_from_row(row: tuple) -> StoredUser:
    return StoredUser(id=int(row[0]), display_name=row[1], email=row[2], is_admin=bool(row[3]))
