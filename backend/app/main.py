# backend/app/main.py

import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as SA_TimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models  # noqa: F401  registers every table on Base metadata
from .api import api_availability, api_billing, api_booking, api_policy
from .core.config import settings
from .core.observability import setup_logging, setup_tracer
from .database import Base, SessionLocal, engine
from .db_utils import ensure_booking_overlap_constraint
from .utils.errors import SchedulingError
from .utils.redis_cache import close_redis_client
from .utils.status_logger import register_status_listeners

setup_logging()
logger = logging.getLogger(__name__)

_BOOT_TS = time.time()

register_status_listeners()

Base.metadata.create_all(bind=engine)
ensure_booking_overlap_constraint(engine)

app = FastAPI(title="Scheduling API", default_response_class=ORJSONResponse)
setup_tracer(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.rstrip("/") for o in settings.CORS_ORIGINS],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("CORS origins set to: %s", settings.CORS_ORIGINS)


@app.middleware("http")
async def catch_exceptions(request: Request, call_next):
    """Turn anything the route handlers did not translate into a JSON error."""
    try:
        return await call_next(request)
    except StarletteHTTPException as exc:
        logger.error("HTTP error %s at %s: %s", exc.status_code, request.url.path, exc.detail)
        return ORJSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    except SA_TimeoutError as exc:  # DB pool timeout -> 503 to reduce retry storms
        logger.error("DB timeout at %s: %s", request.url.path, str(exc))
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": "database_busy", "message": "Database busy, please retry"},
        )
    except Exception as exc:
        logger.exception("Unhandled error at %s: %s", request.url.path, exc)
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "internal_error", "message": "Internal Server Error"},
        )


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    if exc.status_code >= 500:
        logger.error("%s at %s: %s", exc.code, request.url.path, exc.message)
    else:
        logger.info("%s at %s: %s", exc.code, request.url.path, exc.message)
    return ORJSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return validation errors with details and log them for debugging."""
    errors = exc.errors()
    logger.warning("Validation error at %s: %s", request.url.path, errors)
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(errors)},
    )


@app.get("/healthz", tags=["health"])
def healthz():
    """Readiness check: a DB round trip plus process uptime."""
    started = time.perf_counter()
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except OperationalError as exc:
        logger.warning("Health check DB ping failed: %s", exc)
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "error", "reason": "db_unavailable"},
            headers={"Cache-Control": "no-store"},
        )
    finally:
        db.close()
    return {
        "status": "ok",
        "db_ping_ms": round((time.perf_counter() - started) * 1000, 1),
        "uptime_s": round(time.time() - _BOOT_TS, 1),
    }


api_prefix = settings.API_V1_STR  # usually something like "/api/v1"

app.include_router(
    api_availability.router,
    prefix=f"{api_prefix}/availability",
    tags=["availability"],
)
app.include_router(
    api_booking.router,
    prefix=f"{api_prefix}/bookings",
    tags=["bookings"],
)
app.include_router(
    api_billing.router,
    prefix=f"{api_prefix}/billing",
    tags=["billing"],
)
app.include_router(
    api_policy.router,
    prefix=f"{api_prefix}/policies",
    tags=["policies"],
)


# ─── A simple root check ─────────────────────────────────────────────────────────────
@app.get("/")
async def root():
    return {"message": "Welcome to the Scheduling API"}


@app.on_event("shutdown")
def shutdown_redis_client() -> None:
    """Close Redis connections when the application shuts down."""
    logger.info("Closing Redis client")
    close_redis_client()
