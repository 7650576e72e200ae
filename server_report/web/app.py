"""Website API for ServerReport."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import database_path, get_settings
from ..models import User
from ..service import ReportService
from ..state import ReportState, StoreUnavailableError
from .auth import Authenticator, header_authenticator
from .schemas import ReportCreate, ReportUpdate, StatusUpdate

logger = logging.getLogger(__name__)


def _validation_messages(exc: RequestValidationError) -> List[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return messages


def create_app(service: ReportService, authenticator: Optional[Authenticator] = None) -> FastAPI:
    """Build the FastAPI application around an already initialised service."""

    authenticate = authenticator or header_authenticator(
        service.state, service.settings.web_auth_header
    )
    app = FastAPI(title="ServerReport")
    app.state.service = service

    # Error mapping -----------------------------------------------------
    @app.exception_handler(ReportService.ValidationError)
    async def on_report_invalid(request: Request, exc: ReportService.ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"message": "; ".join(exc.errors), "errors": exc.errors},
        )

    @app.exception_handler(RequestValidationError)
    async def on_request_invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid request", "errors": _validation_messages(exc)},
        )

    @app.exception_handler(ReportService.NotFoundError)
    async def on_not_found(request: Request, exc: ReportService.NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"message": str(exc)})

    @app.exception_handler(StoreUnavailableError)
    async def on_store_unavailable(request: Request, exc: StoreUnavailableError) -> JSONResponse:
        logger.error("Request %s %s failed", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    # Principals --------------------------------------------------------
    def current_user(request: Request) -> User:
        user = authenticate(request)
        if user is None:
            raise HTTPException(status_code=401, detail="Authentication required")
        return user

    def admin_user(user: User = Depends(current_user)) -> User:
        if not user.is_admin:
            raise HTTPException(status_code=403, detail="Admin access required")
        return user

    # Health ------------------------------------------------------------
    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        """Liveness probe; does not touch the database."""

        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    # Reports -----------------------------------------------------------
    @app.post("/api/reports", status_code=201)
    def create_report(payload: ReportCreate, user: User = Depends(current_user)) -> Dict[str, Any]:
        report = service.create(
            user.id,
            title=payload.title,
            description=payload.description,
            category=payload.category,
            priority=payload.priority,
            source=payload.source,
        )
        return report.to_dict()

    @app.get("/api/reports")
    def list_reports(user: User = Depends(current_user)) -> List[Dict[str, Any]]:
        return [report.to_dict() for report in service.list_by_user(user.id)]

    @app.get("/api/reports/{report_id}")
    def get_report(report_id: int, user: User = Depends(current_user)) -> Dict[str, Any]:
        return service.get_by_id(report_id, requesting_user_id=user.id).to_dict()

    @app.put("/api/reports/{report_id}")
    def update_report(
        report_id: int,
        payload: ReportUpdate,
        user: User = Depends(current_user),
    ) -> Dict[str, Any]:
        report = service.update(
            report_id,
            user.id,
            title=payload.title,
            description=payload.description,
            category=payload.category,
            priority=payload.priority,
            status=payload.status,
        )
        return report.to_dict()

    @app.delete("/api/reports/{report_id}")
    def delete_report(report_id: int, user: User = Depends(current_user)) -> Dict[str, str]:
        service.delete(report_id, user.id)
        return {"message": "Report deleted successfully"}

    # Admin -------------------------------------------------------------
    @app.get("/api/admin/users")
    def admin_list_users(admin: User = Depends(admin_user)) -> List[Dict[str, Any]]:
        return [user.to_dict() for user in service.list_users()]

    @app.get("/api/admin/users/{user_id}/reports")
    def admin_user_reports(user_id: int, admin: User = Depends(admin_user)) -> List[Dict[str, Any]]:
        owner = service.get_user(user_id)
        return [report.to_dict() for report in service.list_user_reports(owner.id)]

    @app.get("/api/admin/reports")
    def admin_list_reports(
        status: Optional[str] = None,
        priority: Optional[str] = None,
        admin: User = Depends(admin_user),
    ) -> List[Dict[str, Any]]:
        return [report.to_dict() for report in service.list_filtered(status, priority)]

    @app.put("/api/admin/reports/{report_id}/status")
    def admin_update_status(
        report_id: int,
        payload: StatusUpdate,
        admin: User = Depends(admin_user),
    ) -> Dict[str, Any]:
        report = service.admin_update_status(report_id, payload.status)
        logger.info("Admin %s set report %s to %s", admin.id, report_id, report.status.value)
        return report.to_dict()

    @app.get("/api/admin/stats")
    def admin_stats(admin: User = Depends(admin_user)) -> Dict[str, int]:
        return service.aggregate_stats()

    return app


def main() -> None:
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    settings = get_settings()
    service = ReportService(ReportState(database_path()), settings)
    app = create_app(service)
    logger.info("Serving ServerReport on %s:%s", settings.web_host, settings.web_port)
    uvicorn.run(app, host=settings.web_host, port=settings.web_port)


__all__ = ["create_app", "main"]
