"""Summary: Core application services for semesterplan.

Importance: Orchestrates identity checks, reservation management and ICS imports.
Alternatives: Build a full service layer with a dependency injection framework.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from semesterplan.calendar import IcsImportParser
from semesterplan.errors import (
    InsufficientRightsError,
    MalformedDocumentError,
    SemesterplanError,
    StorageError,
    UnauthorizedError,
)
from semesterplan.models import Reservation, StoredUser, User
from semesterplan.reconciler import ReservationReconciler
from semesterplan.storage.sqlite_store import SqliteStore, StoredApiToken


logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_UNAUTHORIZED = "unauthorized"
STATUS_FORBIDDEN = "forbidden"
STATUS_ERROR = "error"


class IdentityProvider(ABC):
    """Summary: Resolves the caller of an import to a user.

    Importance: The import runs only after the caller is known.
    Alternatives: Read the user from a global session object.
    """

    @abstractmethod
    def current_user(self, token: str | None) -> StoredUser:
        """Summary: Return the acting user or raise UnauthorizedError."""


@dataclass(frozen=True)
class UserService:
    """Summary: Manages user records.

    Importance: Provides user creation and lookup for token issuance.
    Alternatives: Use an external identity provider.
    """

    store: SqliteStore

    def create_user(self, display_name: str, email: str, is_admin: bool = False) -> int:
        """Summary: Create or ensure a user exists.

        Importance: Lets operators onboard planners without touching the database.
        Alternatives: Keep a single hardcoded user.
        """

        return self.store.ensure_user(
            User(display_name=display_name, email=email, is_admin=is_admin)
        )

    def list_users(self) -> list[StoredUser]:
        return self.store.list_users()

    def get_user_by_email(self, email: str) -> StoredUser | None:
        return self.store.get_user_by_email(email)


@dataclass(frozen=True)
class AccessTokenService(IdentityProvider):
    """Summary: Issues and verifies API tokens for users.

    Importance: Backs the identity check that precedes every import.
    Alternatives: Use OAuth or session cookies.
    """

    store: SqliteStore
    token_secret: str

    def create_token(self, user_id: int, label: str | None = None) -> tuple[int, str]:
        """Summary: Create a new API token for a user.

        Importance: Returns a one-time plaintext token for client storage.
        Alternatives: Store raw tokens in the database.
        """

        raw_token = secrets.token_urlsafe(32)
        token_id = self.store.create_api_token(
            user_id=user_id,
            token_hash=self._hash_token(raw_token),
            label=label,
            created_at=datetime.utcnow().isoformat(),
        )
        return token_id, raw_token

    def revoke_token(self, user_id: int, token_id: int) -> bool:
        return self.store.delete_api_token(user_id, token_id)

    def list_tokens(self, user_id: int) -> list[StoredApiToken]:
        return self.store.list_api_tokens(user_id)

    def resolve_user_id(self, token: str) -> int | None:
        return self.store.get_user_id_by_token(self._hash_token(token))

    def current_user(self, token: str | None) -> StoredUser:
        """Summary: Resolve a token to its user.

        Importance: Unknown or missing tokens never reach the parser.
        Alternatives: Fall back to a default user.
        """

        if not token:
            raise UnauthorizedError("No API token supplied")
        user_id = self.resolve_user_id(token)
        user = self.store.get_user(user_id) if user_id is not None else None
        if user is None:
            raise UnauthorizedError("Invalid API token")
        return user

    def _hash_token(self, token: str) -> str:
        """Summary: Hash an API token with a secret salt.

        Importance: Avoids storing raw tokens in the database.
        Alternatives: Use an HSM or external secrets manager.
        """

        salt = self.token_secret or "semesterplan"
        return hashlib.sha256(f"{salt}:{token}".encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ReservationService:
    """Summary: Creates and lists reservations that imports can target."""

    store: SqliteStore

    def create_reservation(
        self, name: str, owner_id: int | None, reservation_id: str | None = None
    ) -> str:
        reservation_id = self.store.create_reservation(name, owner_id, reservation_id)
        logger.info("Created reservation %s (%s).", reservation_id, name)
        return reservation_id

    def get_reservation(self, reservation_id: str) -> Reservation | None:
        return self.store.get_reservation(reservation_id)

    def list_reservations(self, limit: int) -> list[Reservation]:
        return self.store.list_reservations(limit)


@dataclass(frozen=True)
class ImportReport:
    """Summary: Terminal result of one import call.

    Importance: Gives the HTTP and CLI layers one machine-readable status to render.
    Alternatives: Raise exceptions all the way up to the presentation layer.
    """

    status: str
    message: str
    updated: int = 0
    failed_keys: list[str] = field(default_factory=list)
    skipped_events: int = 0

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS


@dataclass(frozen=True)
class ImportService:
    """Summary: Runs the identity check, parse, reconcile and commit steps of an import.

    Importance: Converts every terminal failure into exactly one ImportReport.
    Alternatives: Let each endpoint stitch the steps together.
    """

    identity: IdentityProvider
    parser: IcsImportParser
    reconciler: ReservationReconciler

    def run_import(self, token: str | None, document: str | bytes) -> ImportReport:
        """Summary: Import an ICS document on behalf of the token's user.

        Importance: Per-event and per-key defects are reported, never fatal.
        Alternatives: Stop at the first unknown reservation.
        """

        try:
            user = self.identity.current_user(token)
        except UnauthorizedError:
            logger.exception("Unauthorized access: no user found for the supplied token.")
            return ImportReport(status=STATUS_UNAUTHORIZED, message="Unauthorized")

        try:
            group = self.parser.parse_and_group(document)
            outcome = self.reconciler.reconcile(group, user)
            updated = self.reconciler.commit(outcome, user)
        except InsufficientRightsError:
            logger.exception("User %s lacks the rights to store the imported ics file.", user.email)
            return ImportReport(status=STATUS_FORBIDDEN, message="Forbidden: insufficient rights")
        except (MalformedDocumentError, StorageError):
            logger.exception("Error processing the ics file.")
            return ImportReport(status=STATUS_ERROR, message="Internal server error")
        except SemesterplanError:
            logger.exception("Unexpected failure while importing the ics file.")
            return ImportReport(status=STATUS_ERROR, message="Internal server error")

        return ImportReport(
            status=STATUS_SUCCESS,
            message="Import successful",
            updated=updated,
            failed_keys=list(outcome.failed_keys),
            skipped_events=len(group.skipped),
        )
