"""Summary: Command-line interface for semesterplan.

Importance: Provides a local entry point for setup, imports and serving the API.
Alternatives: Use a CLI framework like Typer or Click.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from semesterplan.app import build_services
from semesterplan.config import AppConfig


def build_parser() -> argparse.ArgumentParser:
    """Summary: Build the CLI argument parser.

    Importance: Defines supported commands for local operation.
    Alternatives: Use a CLI framework like Typer or Click.
    """

    parser = argparse.ArgumentParser(description="Semesterplan ICS import CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database schema")

    add_user = subparsers.add_parser("add-user", help="Create a user")
    add_user.add_argument("display_name", type=str)
    add_user.add_argument("email", type=str)
    add_user.add_argument("--admin", action="store_true")

    issue_token = subparsers.add_parser("issue-token", help="Issue an API token for a user")
    issue_token.add_argument("email", type=str)
    issue_token.add_argument("--label", type=str, default=None)

    add_reservation = subparsers.add_parser("add-reservation", help="Create a reservation")
    add_reservation.add_argument("name", type=str)
    add_reservation.add_argument("--id", dest="reservation_id", type=str, default=None)
    add_reservation.add_argument("--owner", type=str, default=None, help="Owner email")

    list_reservations = subparsers.add_parser("list-reservations", help="List reservations")
    list_reservations.add_argument("--limit", type=int, default=50)

    import_ics = subparsers.add_parser("import", help="Import an .ics file")
    import_ics.add_argument("path", type=str)
    import_ics.add_argument("--token", type=str, required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default=None)
    serve.add_argument("--port", type=int, default=None)

    return parser


def run_cli(argv: list[str] | None = None) -> int:
    """Summary: Execute CLI commands based on arguments.

    Importance: Returns a non-zero exit code when an import does not succeed.
    Alternatives: Invoke services via the HTTP API.
    """

    parser = build_parser()
    args = parser.parse_args(argv)
    config = AppConfig.from_env()
    logging.basicConfig(
        level=config.log_level.upper(), format="%(levelname)s %(name)s: %(message)s"
    )

    if args.command == "serve":
        import uvicorn

        uvicorn.run(
            "semesterplan.api:create_app_from_env",
            factory=True,
            host=args.host or config.api_host,
            port=args.port or config.api_port,
        )
        return 0

    services = build_services(config)

    if args.command == "init-db":
        print(f"Database ready at {config.db_path}.")
        return 0

    if args.command == "add-user":
        user_id = services.users.create_user(args.display_name, args.email, args.admin)
        print(f"User {user_id} ({args.email}).")
        return 0

    if args.command == "issue-token":
        user = services.users.get_user_by_email(args.email)
        if user is None:
            print(f"Unknown user {args.email}.", file=sys.stderr)
            return 1
        token_id, token = services.tokens.create_token(user.id, args.label)
        print(f"Token {token_id}: {token}")
        return 0

    if args.command == "add-reservation":
        owner_id = services.default_user_id
        if args.owner:
            owner = services.users.get_user_by_email(args.owner)
            if owner is None:
                print(f"Unknown user {args.owner}.", file=sys.stderr)
                return 1
            owner_id = owner.id
        reservation_id = services.reservations.create_reservation(
            args.name, owner_id, args.reservation_id
        )
        print(f"Created reservation {reservation_id} ({args.name}).")
        return 0

    if args.command == "list-reservations":
        for reservation in services.reservations.list_reservations(args.limit):
            print(f"{reservation.id}: {reservation.name} ({len(reservation.appointments)} appointments)")
            for appointment in reservation.appointments:
                print(f"    {appointment.start.isoformat()} - {appointment.end.isoformat()}")
        return 0

    if args.command == "import":
        document = Path(args.path).read_bytes()
        report = services.imports.run_import(args.token, document)
        print(f"{report.status}: {report.message} ({report.updated} reservations updated).")
        if report.failed_keys:
            print(f"Unknown reservation IDs: {', '.join(report.failed_keys)}")
        if report.skipped_events:
            print(f"Skipped {report.skipped_events} events.")
        return 0 if report.ok else 1

    return 1


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
