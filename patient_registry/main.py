from __future__ import annotations

import logging
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

from patient_registry.api.patients import router as patients_router
from patient_registry.context import AppContext
from patient_registry.core.config import Settings, get_settings
from patient_registry.db.base import Base
from patient_registry.exceptions import (
    MissingCriterionError,
    NotFoundError,
    PatientRegistryError,
    ValidationError,
)
from patient_registry.logging_utils import (
    bind_request_id,
    configure_logging,
    reset_request_id,
)

logger = logging.getLogger(__name__)

SERVER_ERROR_BODY = {"error": "Server error"}

REQUEST_COUNTER = Counter(
    "patient_registry_requests_total",
    "Total number of processed HTTP requests.",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "patient_registry_request_duration_seconds",
    "HTTP request latency in seconds.",
    ["method", "path"],
)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id for logging and echo it back to the caller."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = bind_request_id(request_id)

        try:
            response = await call_next(request)
        finally:
            reset_request_id(token)

        response.headers["X-Request-ID"] = request_id
        return response


UNMATCHED_ROUTE = "unmatched"


def route_label(request: Request) -> str:
    """Return the matched route template, e.g. ``/api/patients/{patient_id}``.

    Metric labels use the template so ids in the path do not create new series.
    """

    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Emit structured access logs and feed metrics."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        start_time = time.perf_counter()
        method = request.method

        try:
            response = await call_next(request)
        except Exception:
            elapsed = time.perf_counter() - start_time
            path = route_label(request)
            REQUEST_COUNTER.labels(method=method, path=path, status="500").inc()
            REQUEST_LATENCY.labels(method=method, path=path).observe(elapsed)
            logger.exception(
                "request failed",
                extra={
                    "method": method,
                    "path": path,
                    "url": request.url.path,
                    "duration_ms": round(elapsed * 1000, 2),
                },
            )
            raise

        elapsed = time.perf_counter() - start_time
        path = route_label(request)
        REQUEST_COUNTER.labels(
            method=method, path=path, status=str(response.status_code)
        ).inc()
        REQUEST_LATENCY.labels(method=method, path=path).observe(elapsed)

        logger.info(
            "request completed",
            extra={
                "method": method,
                "path": path,
                "url": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(elapsed * 1000, 2),
            },
        )
        return response


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "Patient not found"},
    )


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation failed",
            "violations": [violation.as_dict() for violation in exc.violations],
        },
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed bodies and query strings in the same shape as schema violations."""

    violations = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        field = ".".join(loc[1:]) or (loc[0] if loc else "body")
        violations.append({"field": field, "message": error.get("msg", "")})
    return JSONResponse(
        status_code=422,
        content={"error": "Validation failed", "violations": violations},
    )


async def missing_criterion_handler(
    request: Request, exc: MissingCriterionError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "firstName or doctorName query parameter is required"},
    )


async def registry_error_handler(request: Request, exc: PatientRegistryError) -> JSONResponse:
    """Store and export failures: log the cause, return a generic body."""

    logger.error(
        "request failed: %s",
        exc,
        exc_info=exc,
        extra={"method": request.method, "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=SERVER_ERROR_BODY,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # logged by AccessLogMiddleware when the error propagates past this handler
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=SERVER_ERROR_BODY,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    context: AppContext = app.state.context
    Base.metadata.create_all(bind=context.engine)
    logger.info(
        "database connected",
        extra={"dialect": context.engine.dialect.name, "pool_size": context.settings.db_pool_size},
    )
    try:
        yield
    finally:
        context.engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application and its context from ``settings``."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    app.state.context = AppContext.from_settings(settings)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(AccessLogMiddleware)

    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(MissingCriterionError, missing_criterion_handler)
    app.add_exception_handler(PatientRegistryError, registry_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/metrics")
    def metrics() -> Response:
        """Expose Prometheus metrics for scraping."""

        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health")
    def health() -> dict[str, str]:
        """Health check endpoint used by infrastructure probes."""

        return {"status": "ok"}

    app.include_router(patients_router)

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    else:
        logger.debug("static directory %s not found; not serving assets", static_dir)

    return app


app = create_app()
