"""
╔══════════════════════════════════════════════════╗
║      Portfolio CMS                                 ║
║ Case-study persistence, versioning and search      ║
║                                                   ║
║    Built with: FastAPI + PostgreSQL (Supabase)     ║
║    Version: 1.0.0                                  ║
╚══════════════════════════════════════════════════╝
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.api.envelope import case_study_error_envelope, error_envelope, success_envelope
from app.api.routes.case_studies import router as case_studies_router
from app.api.routes.search import router as search_router
from app.core.config import get_settings
from app.core.correlation import request_context
from app.core.database import async_session, engine, init_db
from app.core.errors import CaseStudyError
from app.core.logging import get_logger, setup_logging
from app.services.case_study_service import CaseStudyService

settings = get_settings()
logger = get_logger("main")

# Track uptime
_start_time = time.time()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup & shutdown lifecycle."""

    # ── Startup ──
    setup_logging(debug=settings.app_debug)
    logger.info("app_starting", app=settings.app_name, env=settings.app_env)

    await init_db()
    logger.info("database_initialized")

    app.state.case_study_service = CaseStudyService(async_session, settings)

    logger.info("app_ready", port=settings.app_port)

    yield

    # ── Shutdown ──
    await engine.dispose()
    logger.info("app_shutdown")


# ── Create FastAPI App ──

app = FastAPI(
    title="Portfolio CMS",
    description=(
        "Case-study persistence service for the portfolio admin dashboard.\n\n"
        "Writes are acknowledged only after they are confirmed readable; every content "
        "change is kept as an immutable version snapshot."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS Middleware ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Logging Middleware ──

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests with timing."""
    with request_context(
        request.headers.get("x-request-id"),
        request.headers.get("x-correlation-id"),
    ) as (request_id, correlation_id):
        start = time.time()
        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            elapsed = round((time.time() - start) * 1000, 2)
            if response is not None:
                response.headers["x-request-id"] = request_id
                response.headers["x-correlation-id"] = correlation_id
                status_code = response.status_code
            else:
                status_code = 500

            if request.url.path not in ["/health", "/docs", "/redoc", "/openapi.json"]:
                logger.info(
                    "http_request",
                    method=request.method,
                    path=request.url.path,
                    status=status_code,
                    elapsed_ms=elapsed,
                )


# ── Global Exception Handlers ──

@app.exception_handler(CaseStudyError)
async def case_study_error_handler(request: Request, exc: CaseStudyError):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "case_study_error",
        path=request.url.path,
        kind=exc.kind,
        status_code=exc.status_code,
        retryable=exc.retryable,
    )
    return case_study_error_envelope(exc, meta={"path": request.url.path})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=str(exc.detail),
    )
    return error_envelope(
        code="http_error",
        message="Request failed",
        status_code=exc.status_code,
        details=exc.detail,
        meta={"path": request.url.path},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("validation_error", path=request.url.path, errors=exc.errors())
    return error_envelope(
        code="validation_error",
        message="Validation failed",
        status_code=422,
        details=_jsonable_errors(exc),
        meta={"path": request.url.path},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Never leak exception text; log the type and return a generic message."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error_type=type(exc).__name__,
    )
    return error_envelope(
        code="internal_error",
        message="Internal server error",
        status_code=500,
        details=None,
        meta={"path": request.url.path},
    )


def _jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(item.get("loc", ())), "msg": item.get("msg"), "type": item.get("type")}
        for item in exc.errors()
    ]


# ── Register Routers ──

app.include_router(case_studies_router, prefix="/api/v1")
app.include_router(search_router, prefix="/api/v1")


# ── Health Check ──

@app.get("/health", tags=["System"])
async def health_check():
    """Liveness probe."""
    uptime = round(time.time() - _start_time, 2)
    return success_envelope({"status": "ok", "version": "1.0.0", "uptime_seconds": uptime})
