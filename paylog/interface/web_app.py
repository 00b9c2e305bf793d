"""Mini README: FastAPI-powered admin interface for PayLog.

Structure:
    * create_application - application factory wiring collaborators and routes.
    * require_admin - dependency gating every ledger and roster endpoint.
    * Exception handlers - render ``PayLogError`` subclasses as
      ``{"success": false, "error": ...}`` with a matching status code.

The factory builds one ``Database``, ``LedgerEngine``, ``RosterReconciler``,
``SessionStore`` and ``SubscriberRegistry`` per application. Blocking storage
work runs in the thread pool; change notifications reach open WebSocket
connections on ``/ws`` once a mutation has committed.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from fastapi import (
    Cookie,
    Depends,
    FastAPI,
    File,
    Form,
    Path as PathParam,
    Request,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from .. import __version__
from ..auth import AdminAuthenticator, SessionStore
from ..configuration import PayLogSettings, get_settings
from ..errors import AuthError, PayLogError
from ..finance import LedgerEngine, parse_to_cents
from ..logging_utils import get_logger
from ..notifications import SubscriberRegistry
from ..roster import RosterReconciler
from ..storage import MAX_MEMBER_ID, Database

LOGGER = get_logger(__name__)

SESSION_COOKIE = "admin_session"


def create_application(
    settings: Optional[PayLogSettings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Create the FastAPI application with routes and dependencies."""

    settings = settings or get_settings()
    app = FastAPI(title="PayLog", version=__version__)
    templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
    static_directory = Path(__file__).parent / "static"
    app.mount("/static", StaticFiles(directory=str(static_directory)), name="static")

    database = database or Database(settings.resolved_database_url())
    database.create_schema()
    subscribers = SubscriberRegistry()
    sessions = SessionStore(max_idle_seconds=settings.session_max_age_seconds)
    authenticator = AdminAuthenticator(
        database, sessions, bcrypt_rounds=settings.bcrypt_rounds
    )
    ledger = LedgerEngine(database, notifier=subscribers)
    reconciler = RosterReconciler(database, notifier=subscribers)

    app.state.database = database
    app.state.subscribers = subscribers
    app.state.sessions = sessions
    app.state.ledger = ledger
    app.state.reconciler = reconciler

    @app.exception_handler(PayLogError)
    async def handle_paylog_error(request: Request, error: PayLogError) -> JSONResponse:
        if isinstance(error, AuthError):
            return JSONResponse({"success": False}, status_code=error.status_code)
        LOGGER.debug("%s %s failed: %s", request.method, request.url.path, error.message)
        return JSONResponse(
            {"success": False, "error": error.message}, status_code=error.status_code
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, error: RequestValidationError
    ) -> JSONResponse:
        LOGGER.debug("Rejected request to %s: %s", request.url.path, error.errors())
        return JSONResponse({"success": False, "error": "Invalid request."}, status_code=400)

    def require_admin(admin_session: Optional[str] = Cookie(None)) -> str:
        if not authenticator.is_authenticated(admin_session):
            raise AuthError()
        return admin_session

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        """Render the single-page admin console."""

        return templates.TemplateResponse(
            request,
            "index.html",
            {"version": __version__},
        )

    @app.get("/admin/session")
    async def session_status(admin_session: Optional[str] = Cookie(None)) -> JSONResponse:
        """Report whether the caller holds a live session and a password exists."""

        configured = await run_in_threadpool(authenticator.has_credential)
        return JSONResponse(
            {
                "success": True,
                "authenticated": authenticator.is_authenticated(admin_session),
                "configured": configured,
            }
        )

    @app.post("/admin/login")
    async def login(
        password: str = Form(...),
        confirm_password: Optional[str] = Form(None),
    ) -> JSONResponse:
        """Verify the admin password (or set it on first use) and issue a cookie."""

        token = await run_in_threadpool(authenticator.login, password, confirm_password)
        response = JSONResponse({"success": True})
        response.set_cookie(
            SESSION_COOKIE,
            token,
            max_age=settings.session_max_age_seconds,
            path="/",
            httponly=True,
            samesite="strict",
        )
        return response

    @app.post("/admin/logout")
    async def logout(admin_session: Optional[str] = Cookie(None)) -> JSONResponse:
        authenticator.logout(admin_session)
        response = JSONResponse({"success": True})
        response.delete_cookie(SESSION_COOKIE, path="/", httponly=True, samesite="strict")
        return response

    @app.post("/admin/password")
    async def change_password(
        current_password: str = Form(...),
        new_password: str = Form(...),
        confirm_password: str = Form(...),
        _: str = Depends(require_admin),
    ) -> JSONResponse:
        await run_in_threadpool(
            authenticator.change_password, current_password, new_password, confirm_password
        )
        return JSONResponse({"success": True})

    @app.get("/members")
    async def list_members(_: str = Depends(require_admin)) -> JSONResponse:
        """Return the roster with padded display names and balances."""

        listing = await run_in_threadpool(ledger.list_members)
        return JSONResponse({"success": True, **listing.as_dict()})

    @app.get("/members/{member_id}")
    async def member_detail(
        member_id: int = PathParam(..., ge=1, le=MAX_MEMBER_ID),
        _: str = Depends(require_admin),
    ) -> JSONResponse:
        """Return one member with its transactions, newest first."""

        detail = await run_in_threadpool(ledger.get_member, member_id)
        return JSONResponse({"success": True, **detail.as_dict()})

    @app.post("/members/{member_id}/transactions")
    async def apply_transaction(
        member_id: int = PathParam(..., ge=1, le=MAX_MEMBER_ID),
        date: str = Form(...),
        amount: str = Form(...),
        description: str = Form(""),
        kind: str = Form("charge", alias="type"),
        _: str = Depends(require_admin),
    ) -> JSONResponse:
        """Apply a charge or credit and return the new balance."""

        amount_cents = parse_to_cents(amount)
        result = await run_in_threadpool(
            ledger.apply_transaction, member_id, date, description, amount_cents, kind
        )
        return JSONResponse(
            {
                "success": True,
                "balance": result.balance,
                "transactionId": result.transaction_id,
            }
        )

    @app.delete("/members/{member_id}/transactions/last")
    async def undo_last_transaction(
        member_id: int = PathParam(..., ge=1, le=MAX_MEMBER_ID),
        _: str = Depends(require_admin),
    ) -> JSONResponse:
        """Remove the most recent transaction and return the restored balance."""

        result = await run_in_threadpool(ledger.undo_last_transaction, member_id)
        return JSONResponse(
            {
                "success": True,
                "balance": result.balance,
                "transactionId": result.transaction_id,
            }
        )

    @app.post("/members/import/preview")
    async def preview_import(
        file: UploadFile = File(...), _: str = Depends(require_admin)
    ) -> JSONResponse:
        """Report how many members a roster import would remove."""

        data = await file.read()
        LOGGER.info("Previewing roster import %s (%s bytes)", file.filename, len(data))
        result = await run_in_threadpool(
            reconciler.import_file, data, file.filename or "", dry_run=True
        )
        return JSONResponse({"success": True, **result})

    @app.post("/members/import")
    async def commit_import(
        file: UploadFile = File(...), _: str = Depends(require_admin)
    ) -> JSONResponse:
        """Reconcile stored members against an uploaded roster."""

        data = await file.read()
        LOGGER.info("Importing roster %s (%s bytes)", file.filename, len(data))
        result = await run_in_threadpool(reconciler.import_file, data, file.filename or "")
        return JSONResponse({"success": True, **result})

    @app.websocket("/ws")
    async def notifications(websocket: WebSocket) -> None:
        """Keep a socket open so change notifications can be pushed to it."""

        await websocket.accept()
        subscribers.add(websocket, asyncio.get_running_loop())
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            subscribers.remove(websocket)

    return app
