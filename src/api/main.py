"""
HTTP API for the commit log: submit, approve and list commits.
"""

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from typing import List, Optional

from .schemas import (
    CommitRequest,
    CommitResponse,
    CommitEntry,
    ApproveRequest,
    ApproveResponse,
    ErrorResponse,
    CommitStatusResponse,
    HealthResponse,
)
from ..core.approval import ApprovalService
from ..core.commits import CommitService
from ..core.config import Settings, load_settings, get_log_store, get_fallback_store, validate_settings
from ..core.errors import CommitLogError
from ..core.query import QueryService
from ..core.store import ILogStore
from util.logging import logger, audit_event

INVALID_COMMIT_PAYLOAD = "Payload inválido. Envía un JSON con mensaje."
INVALID_PAYLOAD = "Payload inválido."

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_commit_service(request: Request) -> CommitService:
    return request.app.state.commit_service


def get_approval_service(request: Request) -> ApprovalService:
    return request.app.state.approval_service


def get_query_service(request: Request) -> QueryService:
    return request.app.state.query_service


def create_app(settings: Optional[Settings] = None, store: Optional[ILogStore] = None,
               fallback: Optional[ILogStore] = None) -> FastAPI:
    """Build the application.

    Settings are loaded from the environment when not given; the store and
    fallback default to the ones the settings describe.
    """
    settings = settings or load_settings()
    if store is None:
        store = get_log_store(settings)
    if fallback is None:
        fallback = get_fallback_store(settings)

    issues = validate_settings(settings)
    for issue in issues:
        logger.warning(f"Configuration: {issue}")

    app = FastAPI(
        title="Last Commit Log API",
        version=settings.version,
        description="Beer-themed commit guestbook with moderated publishing",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store
    app.state.commit_service = CommitService(
        store, retries=settings.write_retries, strict_delimiters=settings.strict_delimiters
    )
    app.state.approval_service = ApprovalService(
        store, admin_secret=settings.admin_secret, retries=settings.write_retries
    )
    app.state.query_service = QueryService(store, fallback=fallback)

    @app.exception_handler(CommitLogError)
    async def commit_log_error_handler(request: Request, exc: CommitLogError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def payload_error_handler(request: Request, exc: RequestValidationError):
        message = INVALID_COMMIT_PAYLOAD if request.url.path == "/api/commit" else INVALID_PAYLOAD
        return JSONResponse(status_code=400, content={"error": message})

    @app.get("/health", response_model=HealthResponse)
    def health_check_endpoint():
        """Report configuration health. Does not contact the remote store."""
        return HealthResponse(
            status="healthy" if store is not None else "degraded",
            version=settings.version,
            provider=store.name if store is not None else "none",
            store_configured=store is not None,
            issues=issues,
        )

    @app.get("/api/commit", response_model=List[CommitEntry])
    def list_commits_endpoint(query: QueryService = Depends(get_query_service)):
        """All commits, newest first. Never fails; an unreadable log lists as empty."""
        try:
            return [CommitEntry(**r.to_dict()) for r in query.list_commits()]
        except Exception as e:
            logger.error(f"Error fetching commits: {e}")
            return []

    @app.get("/api/commit/status", response_model=CommitStatusResponse)
    def commit_status_endpoint(query: QueryService = Depends(get_query_service)):
        summary = query.summarize()
        latest = summary["latest"]
        return CommitStatusResponse(
            total=summary["total"],
            approved=summary["approved"],
            pending=summary["pending"],
            latest=CommitEntry(**latest.to_dict()) if latest else None,
        )

    @app.post("/api/commit", response_model=CommitResponse, responses=ERROR_RESPONSES)
    def submit_commit_endpoint(request: CommitRequest, commits: CommitService = Depends(get_commit_service)):
        """Submit a commit. It is stored as pending until an administrator approves it."""
        record = commits.submit(request.message, alias=request.alias, beer=request.beer)
        return CommitResponse(caption=record.caption, **record.to_dict())

    @app.post("/api/approve", response_model=ApproveResponse, responses=ERROR_RESPONSES)
    def approve_commit_endpoint(request: ApproveRequest, approvals: ApprovalService = Depends(get_approval_service)):
        audit_event("api.approve", {"hash": request.hash}, payload=request.model_dump())
        commit_hash = approvals.approve(request.hash, request.secret)
        return ApproveResponse(success=True, hash=commit_hash)

    return app


# Module-level application for `uvicorn src.api.main:app`
app = create_app()
