"""
University Content Portal

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from portal.api.deps import DbSession
from portal.api.middleware.rate_limit import RateLimitMiddleware
from portal.api.middleware.request_id import RequestIdMiddleware
from portal.api.v1 import router as api_v1_router
from portal.config import get_settings
from portal.database import close_db, init_db, ping
from portal.kernel.errors import PortalError, UpstreamUnavailable
from portal.logging_config import configure_logging, get_logger
from portal.schemas.common import ErrorResponse, HealthResponse
from portal.web.portals import router as portals_router
from portal.web.route_guard import GuardRedirect

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown tasks.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
        log_format=settings.log_format,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    University Content Portal

    Public notices, news, events and research papers, with admin, teacher
    and student portals.

    ## Publication workflow

    draft -> pending -> published -> archived. Only published, unexpired
    records are ever served to the public.
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first: the last one added is outermost.
# CORS wraps everything so 429s and errors carry its headers too.
_cors_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
]

app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _request_id(request: Request):
    return getattr(request.state, "request_id", None)


@app.exception_handler(PortalError)
async def portal_exception_handler(request: Request, exc: PortalError):
    """Render domain errors with their status and stable code."""
    req_id = _request_id(request)
    headers = {"X-Request-ID": req_id} if req_id else {}
    if isinstance(exc, UpstreamUnavailable):
        headers["Retry-After"] = str(exc.retry_after_seconds)
        logger.warning("Upstream unavailable: %s", exc.message, extra={"path": request.url.path})

    body = ErrorResponse(detail=exc.message, code=exc.code, field=exc.field, request_id=req_id)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


@app.exception_handler(GuardRedirect)
async def guard_redirect_handler(request: Request, exc: GuardRedirect):
    return RedirectResponse(exc.location, status_code=status.HTTP_303_SEE_OTHER)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    req_id = _request_id(request)
    content = {"detail": exc.detail, "code": "http_error"}
    if req_id:
        content["request_id"] = req_id
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    content = {"detail": "Validation error", "code": "validation_error", "errors": errors}
    req_id = _request_id(request)
    if req_id:
        content["request_id"] = req_id
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=content,
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    req_id = _request_id(request)
    if settings.debug:
        content = {
            "detail": str(exc),
            "code": "internal_error",
            "type": type(exc).__name__,
            "request_id": req_id,
        }
    else:
        content = {"detail": "Internal server error", "code": "internal_error", "request_id": req_id}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(response: Response, db: DbSession):
    """Application health, including whether the data store answers."""
    if await ping(db):
        return HealthResponse(status="ok", version=settings.version, database="connected")
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(status="degraded", version=settings.version, database="unavailable")


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
        "portals": ["/admin/login", "/teacher/login", "/student/login"],
    }


app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)
app.include_router(portals_router, tags=["Portals"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "portal.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
