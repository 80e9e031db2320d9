"""Summary: Application factory wiring core services.

Importance: Centralizes dependency creation for the CLI and API layers.
Alternatives: Instantiate services manually in each entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass

from semesterplan.calendar import IcsImportParser
from semesterplan.config import AppConfig
from semesterplan.models import User
from semesterplan.reconciler import ReservationReconciler
from semesterplan.services import (
    AccessTokenService,
    ImportService,
    ReservationService,
    UserService,
)
from semesterplan.storage.sqlite_store import SqliteStore
from semesterplan.timestamps import TimestampNormalizer, ZoneInfoDaylightSavingRule


@dataclass(frozen=True)
class AppServices:
    """Summary: Bundle of core services for semesterplan.

    Importance: Simplifies passing dependencies to UI or API layers.
    Alternatives: Use a dependency injection container.
    """

    users: UserService
    tokens: AccessTokenService
    reservations: ReservationService
    imports: ImportService
    store: SqliteStore
    default_user_id: int


def build_import_service(
    config: AppConfig, store: SqliteStore, tokens: AccessTokenService
) -> ImportService:
    """Summary: Assemble the parse, reconcile and commit pipeline.

    Importance: Keeps the timezone rule and correlation property configurable.
    Alternatives: Construct the pipeline inside the import endpoint.
    """

    normalizer = TimestampNormalizer(ZoneInfoDaylightSavingRule(config.reference_timezone))
    parser = IcsImportParser(normalizer, correlation_property=config.correlation_property)
    reconciler = ReservationReconciler(lookup=store, batch_store=store)
    return ImportService(identity=tokens, parser=parser, reconciler=reconciler)


def build_services(config: AppConfig) -> AppServices:
    """Summary: Build core services from configuration.

    Importance: Provides a single construction path for the application.
    Alternatives: Instantiate services directly within the CLI entrypoint.
    """

    store = SqliteStore(config.db_path)
    store.initialize()
    user = User(
        display_name=config.default_user_name,
        email=config.default_user_email,
        is_admin=True,
    )
    default_user_id = store.ensure_user(user)
    tokens = AccessTokenService(store=store, token_secret=config.token_secret)
    return AppServices(
        users=UserService(store=store),
        tokens=tokens,
        reservations=ReservationService(store=store),
        imports=build_import_service(config, store, tokens),
        store=store,
        default_user_id=default_user_id,
    )
