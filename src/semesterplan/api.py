"""Summary: FastAPI application for semesterplan.

Importance: Exposes the ICS upload flow and reservation management over HTTP.
Alternatives: Use a CLI-only workflow or a different web framework.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field

from semesterplan.app import build_services
from semesterplan.config import AppConfig
from semesterplan.errors import UnauthorizedError
from semesterplan.models import Reservation, StoredUser
from semesterplan.pages import render_result_page, render_upload_page
from semesterplan.services import (
    STATUS_ERROR,
    STATUS_FORBIDDEN,
    STATUS_SUCCESS,
    STATUS_UNAUTHORIZED,
)

STATUS_CODES = {
    STATUS_SUCCESS: 200,
    STATUS_UNAUTHORIZED: 401,
    STATUS_FORBIDDEN: 403,
    STATUS_ERROR: 500,
}


class ReservationCreateRequest(BaseModel):
    """Summary: Request payload for reservation creation.

    Importance: Reservations must exist before an upload can target them.
    Alternatives: Create reservations implicitly during import.
    """

    name: str = Field(min_length=1)
    id: str | None = Field(default=None, min_length=1)


def _serialize_reservation(reservation: Reservation) -> dict[str, Any]:
    return {
        "id": reservation.id,
        "name": reservation.name,
        "owner_id": reservation.owner_id,
        "appointments": [
            {
                "start": appointment.start.isoformat(),
                "end": appointment.end.isoformat(),
                "owner_id": appointment.owner_id,
            }
            for appointment in reservation.appointments
        ],
    }


def create_app(config: AppConfig) -> FastAPI:
    """Summary: Create a FastAPI app wired to semesterplan services.

    Importance: Ensures the API layer shares the same configuration and storage.
    Alternatives: Instantiate services globally outside the factory.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=config.log_level.upper(),
            format="%(levelname)s %(name)s: %(message)s",
        )
    app = FastAPI(title="Semesterplan Import API", version="0.1.0")
    services = build_services(config)

    def require_user(x_api_key: str | None = Header(default=None)) -> StoredUser:
        """Summary: Resolve the caller from the X-Api-Key header.

        Importance: Keeps reservation data private to token holders.
        Alternatives: Use session cookies.
        """

        try:
            return services.tokens.current_user(x_api_key)
        except UnauthorizedError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/semesterplan", response_class=HTMLResponse)
    def upload_form() -> str:
        """Summary: Serve the ICS upload form.

        Importance: Provides a simple UI for planners without extra tooling.
        Alternatives: Build a separate frontend app.
        """

        return render_upload_page()

    @app.post("/semesterplan/import")
    def import_semesterplan(
        file: UploadFile = File(...),
        token: str | None = Form(default=None),
        x_api_key: str | None = Header(default=None),
        accept: str | None = Header(default=None),
    ):
        """Summary: Import an uploaded ICS file into existing reservations.

        Importance: Replaces the appointments of every reservation named in the file.
        Alternatives: Accept a server-side file path instead of an upload.
        """

        content = file.file.read(config.max_upload_bytes + 1)
        if not content:
            raise HTTPException(status_code=400, detail="Upload is empty")
        if len(content) > config.max_upload_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"Upload exceeds {config.max_upload_bytes} bytes",
            )
        report = services.imports.run_import(x_api_key or token, content)
        status_code = STATUS_CODES[report.status]
        if accept and "application/json" in accept:
            return JSONResponse(
                status_code=status_code,
                content={
                    "status": report.status,
                    "message": report.message,
                    "updated": report.updated,
                    "failed_keys": report.failed_keys,
                    "skipped_events": report.skipped_events,
                },
            )
        return HTMLResponse(render_result_page(report, status_code), status_code=status_code)

    @app.post("/reservations")
    def create_reservation(
        payload: ReservationCreateRequest, user: StoredUser = Depends(require_user)
    ) -> dict[str, Any]:
        """Summary: Create an empty reservation owned by the caller."""

        try:
            reservation_id = services.reservations.create_reservation(
                payload.name, user.id, payload.id
            )
        except ValueError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"id": reservation_id}

    @app.get("/reservations", dependencies=[Depends(require_user)])
    def list_reservations(limit: int = 50) -> list[dict[str, Any]]:
        """Summary: List reservations with their appointments.

        Importance: Lets clients verify the result of an import.
        Alternatives: Expose only per-reservation lookups.
        """

        return [
            _serialize_reservation(reservation)
            for reservation in services.reservations.list_reservations(limit)
        ]

    @app.get("/reservations/{reservation_id}", dependencies=[Depends(require_user)])
    def get_reservation(reservation_id: str) -> dict[str, Any]:
        reservation = services.reservations.get_reservation(reservation_id)
        if reservation is None:
            raise HTTPException(status_code=404, detail="Reservation not found")
        return _serialize_reservation(reservation)

    return app


def create_app_from_env() -> FastAPI:
    """Summary: Build the app from environment configuration for ASGI servers."""

    return create_app(AppConfig.from_env())
