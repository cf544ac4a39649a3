"""
EventDesk - FastAPI Application
Subscriptions, payment history and venue schedules for event managers and venue owners
"""
from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from contextlib import asynccontextmanager
import logging
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from eventdesk.database import SessionLocal, init_db
from eventdesk.config import settings
from eventdesk.core.exceptions import AppError
from eventdesk.core.security import get_current_user
from eventdesk.services import subscription_service
from eventdesk.utils.api_response import error_response

from eventdesk.api.routes import (
    health,
    auth,
    subscriptions,
    venues,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting %s...", settings.app_name)

    try:
        init_db()
        logger.info("Database initialized")
    except Exception as e:
        logger.error("Database initialization failed: %s", e)

    try:
        with SessionLocal() as db:
            expired = subscription_service.expire_lapsed_subscriptions(db)
        logger.info("Startup expiry sweep marked %s subscriptions expired", expired)
    except Exception as e:
        logger.error("Subscription expiry sweep failed: %s", e)

    logger.info("API running on %s environment", settings.app_env)
    yield
    logger.info("Shutting down %s...", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Backend API for EventDesk",
    version="1.0.0",
    debug=settings.app_debug,
    lifespan=lifespan,
)

# Respect forwarded proto/host when running behind a proxy.
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail), exc.status_code),
        headers=exc.headers,
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.error("Unhandled %s on %s: %s", type(exc).__name__, request.url.path, exc.description)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.description, exc.status_code),
    )


prefix = settings.api_prefix

app.include_router(health.router, prefix=prefix, tags=["Health"])
app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["Auth"])
app.include_router(
    subscriptions.router,
    prefix=f"{prefix}/subscriptions",
    tags=["Subscriptions"],
    dependencies=[Depends(get_current_user)],
)
app.include_router(
    venues.venues_router, prefix=f"{prefix}/venues", tags=["Venues"], dependencies=[Depends(get_current_user)]
)
app.include_router(
    venues.rentals_router, prefix=f"{prefix}/rentals", tags=["Rentals"], dependencies=[Depends(get_current_user)]
)
