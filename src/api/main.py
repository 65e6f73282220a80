from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .logging_setup import setup_logging
from .repositories import Repository, build_repository
from .routers import tasks as tasks_router
from .schemas import HealthOut
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "tasks", "description": "CRUD operations for tasks."},
]

INTERNAL_ERROR = "Internal server error"
ROUTE_NOT_FOUND = "Route not found"


def _error_message(errors: Sequence[Dict[str, Any]]) -> str:
    """
    Turn the first pydantic error into a sentence for the client.

    Errors raised by our own validators carry their message in ctx['error'];
    built-in ones get prefixed with the offending field.
    """
    if not errors:
        return "Request validation failed"
    first = errors[0]
    ctx = first.get("ctx") or {}
    if first.get("type") == "value_error" and "error" in ctx:
        return str(ctx["error"])
    if first.get("type") == "json_invalid":
        return "Request body is not valid JSON"
    loc = [str(p) for p in first.get("loc", ()) if p != "body"]
    if not loc and first.get("type") == "missing":
        return "Request body is required"
    msg = first.get("msg", "Invalid value")
    return f"{loc[-1]}: {msg}" if loc else msg


def _error_detail(errors: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # ctx may hold exception instances, which are not JSON serializable.
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in errors]


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Report rejected input as 400.

        Response format:
            {
                "error": "Title is required",
                "detail": [{"loc": [...], "msg": "...", "type": "..."}, ...]
            }
        """
        errors = exc.errors()
        logger.info("Rejected %s %s: %s", request.method, request.url.path, _error_message(errors))
        return JSONResponse(
            status_code=400,
            content={"error": _error_message(errors), "detail": _error_detail(errors)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail
        # Starlette's router raises a bare 404 when nothing matched.
        if exc.status_code == 404 and message == "Not Found":
            message = ROUTE_NOT_FOUND
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR})


@asynccontextmanager
async def _lifespan(app: FastAPI):
    if app.state.repository is None:
        app.state.repository = build_repository(app.state.settings)
    logger.info(
        "Task Manager API starting (env=%s, backend=%s)",
        app.state.settings.app_env,
        app.state.settings.persistence_backend,
    )
    yield
    app.state.repository.close()
    logger.info("Task storage closed")


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, repository: Optional[Repository] = None) -> FastAPI:
    """
    Build the Task Manager API.

    Args:
        settings: Resolved settings; read from the environment when omitted.
        repository: Storage backend; built from settings at startup when omitted.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Task Manager API",
        description="Backend API service for managing tasks with a pluggable relational store.",
        version="1.0.0",
        openapi_tags=openapi_tags,
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.repository = repository

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.info("%s %s -> 500 (%.1f ms)", request.method, request.url.path, elapsed_ms)
            raise
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    _install_exception_handlers(app)

    # PUBLIC_INTERFACE
    @app.get("/health", response_model=HealthOut, summary="Health Check", tags=["health"])
    def health_check() -> HealthOut:
        """
        Health check endpoint.
        """
        return HealthOut(status="OK", message="Task Manager API is running")

    app.include_router(tasks_router.router)
    return app


_settings = get_settings()
setup_logging(_settings.log_level)
app = create_app(_settings)


def run() -> None:
    """Serve the API with uvicorn on HOST:PORT."""
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=not _settings.is_production,
        log_level=_settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
