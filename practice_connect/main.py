"""
Main application entry point - FastAPI app instance and configuration.
This is where the ASGI application is created and configured.
Run with: uvicorn practice_connect.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from practice_connect.core.config import settings
from practice_connect.core.logging import configure_logging
from practice_connect.deps import Services
from practice_connect.environments.base import IntegrationError, MissingConfiguration
from practice_connect.routers import integrations, oauth, providers


logger = logging.getLogger("practice_connect.main")


# ---------------------------------------------------------------------------
# LIFESPAN
# ---------------------------------------------------------------------------
# Builds the services container once per process and closes it on shutdown.
# Tests replace the container through app.dependency_overrides[get_services].
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    services = Services.build(settings)
    app.state.services = services
    logger.info(f"{settings.APP_NAME} started")
    try:
        yield
    finally:
        await services.aclose()
        logger.info(f"{settings.APP_NAME} stopped")


# ---------------------------------------------------------------------------
# CREATE FASTAPI APPLICATION
# ---------------------------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------
# The dashboard and the OAuth popup are served from other origins.
# Header list matches what browser clients of this API send.
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type, x-requested-with",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type", "x-requested-with"],
)


@app.middleware("http")
async def answer_options(request: Request, call_next):
    """Answer every OPTIONS request with 200, including non-preflight ones."""
    if request.method == "OPTIONS":
        return PlainTextResponse("ok", headers=CORS_HEADERS)
    return await call_next(request)


# ---------------------------------------------------------------------------
# ERROR HANDLERS
# ---------------------------------------------------------------------------
# Every error body is {"ok": false, "message": "..."}; messages never carry secrets.


@app.exception_handler(IntegrationError)
async def integration_error_handler(request: Request, exc: IntegrationError):
    if isinstance(exc, MissingConfiguration):
        logger.error(f"Configuration error on {request.url.path}: {exc.message}")
    elif exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "message": exc.message},
        headers=CORS_HEADERS,
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # 404 unknown path, 405 unsupported method
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())) or "request"
    return JSONResponse(
        status_code=400,
        content={"ok": False, "message": f"Invalid {field}: {first.get('msg', 'invalid value')}"},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"ok": False, "message": "Internal server error"},
        headers=CORS_HEADERS,
    )


# ---------------------------------------------------------------------------
# REGISTER ROUTERS
# ---------------------------------------------------------------------------
# oauth.router: /oauth-start, /callback/{provider}, /oauth-refresh, /oauth-disconnect
# providers.router: /gsc/sites, /ga4/properties, /gbp/locations, /providers/{provider}/data
# integrations.router: /integrations/status
app.include_router(oauth.router)
app.include_router(providers.router)
app.include_router(integrations.router)


# ---------------------------------------------------------------------------
# HEALTH CHECK ENDPOINT
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
def health_check():
    """
    Simple health check endpoint.

    Does NOT check database connectivity or Google reachability.

    Returns:
        {"status": "ok"}
    """
    return {"status": "ok"}
