"""
app/main.py

Purpose: Application entry point

- Builds the SawaPay FastAPI app and mounts the auth, user, admin and file routers
- Opens MongoDB, indexes and outbound HTTP clients for the app's lifetime
- Tags every request with an id and timing for the logs
- Health, readiness and liveness probes
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers, unhandled_exception_response
from app.core.logging import setup_logging, get_logger, LogContext
from app.db.mongo import connect_to_mongo, close_mongo_connection, check_database_health
from app.db.indexes import create_indexes
from app.db.storage import reset_storage
from app.services.auth_service import close_auth_service
from app.services.functions_service import close_functions_service
from app.api import auth, user, admin, files

APP_VERSION = "1.0.0"

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: config check, database, indexes.
    Shutdown: outbound clients first, then storage and the database.
    """
    logger.info(f"🚀 Starting SawaPay API ({settings.ENVIRONMENT})")

    try:
        validate_settings()

        await connect_to_mongo()
        await create_indexes()
        logger.info(f"✅ MongoDB ready ({settings.MONGODB_DB_NAME})")

        if not await check_database_health():
            logger.warning("⚠️ Database ping failed during startup")

        logger.info(f"Callable functions at {settings.FUNCTIONS_BASE_URL}")
        logger.info(f"Uploads stored in bucket '{settings.STORAGE_BUCKET_NAME}'")

    except Exception as e:
        logger.critical(f"SawaPay API failed to start: {e}", exc_info=True)
        raise

    yield

    logger.info("🛑 Stopping SawaPay API")

    try:
        await close_auth_service()
        await close_functions_service()
        reset_storage()
        await close_mongo_connection()
        logger.info("👋 SawaPay API stopped")

    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


app = FastAPI(
    title="SawaPay API",
    description="Wallets, transfers, KYC review and back-office operations",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Assigns a request id, times the request and flags slow ones."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
    started = time.perf_counter()

    with LogContext(request_id=request_id):
        try:
            response = await call_next(request)
        except Exception as exc:
            # Errors escaping the app would otherwise be rendered outside this context
            response = await unhandled_exception_response(request, exc)
        elapsed = time.perf_counter() - started

        if elapsed > settings.SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} took {elapsed:.2f}s",
                extra={"process_time": elapsed}
            )

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    return response


app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["Auth"])
app.include_router(user.router, prefix=settings.API_PREFIX, tags=["User"])
app.include_router(admin.router, prefix=f"{settings.API_PREFIX}/admin", tags=["Admin"])
app.include_router(files.router, prefix=settings.API_PREFIX, tags=["Files"])


@app.get("/", tags=["Health"])
async def root():
    return {
        "name": "SawaPay API",
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "api": settings.API_PREFIX,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Reports database reachability and which upstreams are configured.
    503 when the database is down.
    """
    try:
        database = "healthy" if await check_database_health() else "unhealthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        database = "unhealthy"

    body = {
        "status": "healthy" if database == "healthy" else "unhealthy",
        "timestamp": time.time(),
        "version": APP_VERSION,
        "checks": {
            "database": database,
            "auth_provider": "configured" if settings.AUTH_API_KEY else "missing_api_key",
            "functions": settings.FUNCTIONS_BASE_URL,
            "storage_bucket": settings.STORAGE_BUCKET_NAME,
        },
    }
    return JSONResponse(content=body, status_code=200 if database == "healthy" else 503)


@app.get("/ready", tags=["Health"])
async def readiness_check():
    """Ready once MongoDB answers a ping."""
    try:
        if await check_database_health():
            return {"status": "ready"}
        reason = "database_unavailable"
    except Exception as e:
        reason = str(e)

    return JSONResponse(status_code=503, content={"status": "not_ready", "reason": reason})


@app.get("/live", tags=["Health"])
async def liveness_check():
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
