"""
Main FastAPI application.

Routes live under ``settings.api_prefix``:
1. Health
2. Designs (validate / repair / compile / markup)
3. Specs (decode)
4. Runtime sessions
5. Prompt builds
6. Saved creations
"""
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from miniapp.api.deps import close_store
from miniapp.api.v1 import builds, creations, designs, health, sessions, specs
from miniapp.api.v1.sessions import session_manager
from miniapp.config import settings
from miniapp.core.logger import setup_logging
from miniapp.utils.logging import get_logger, log_context

logger = get_logger(__name__)


# ============================================================================
# APPLICATION LIFESPAN
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    with log_context(correlation_id=str(uuid.uuid4()), operation="startup"):
        logger.info(
            "app.startup.completed",
            extra={
                "service": settings.app_name,
                "version": settings.app_version,
                "storage_backend": settings.storage_backend,
                "remote_generation": bool(settings.openai_api_key),
            }
        )

    yield

    with log_context(correlation_id=str(uuid.uuid4()), operation="shutdown"):
        logger.info("app.shutdown.started")
        await session_manager.close_all()
        await close_store()
        logger.info("app.shutdown.completed")


# ============================================================================
# FASTAPI APP
# ============================================================================

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="MiniApp generation, validation and runtime service",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Log all HTTP requests with correlation tracking"""
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    start_time = time.time()

    with log_context(correlation_id=correlation_id):
        logger.debug(
            "http.request.received",
            extra={"path": request.url.path, "method": request.method}
        )
        response = await call_next(request)

        logger.performance(
            "http.request.completed",
            duration_ms=(time.time() - start_time) * 1000,
            extra={
                "status_code": response.status_code,
                "path": request.url.path,
                "method": request.method
            }
        )
        response.headers["X-Correlation-ID"] = correlation_id
        return response


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "app.exception.unhandled",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__
        },
        exc_info=exc
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "correlation_id": request.headers.get("X-Correlation-ID", "unknown")
        }
    )


# ============================================================================
# ROUTERS
# ============================================================================

app.include_router(health.router, prefix=settings.api_prefix, tags=["Health"])
app.include_router(designs.router, prefix=settings.api_prefix, tags=["Designs"])
app.include_router(specs.router, prefix=settings.api_prefix, tags=["Specs"])
app.include_router(sessions.router, prefix=settings.api_prefix, tags=["Sessions"])
app.include_router(builds.router, prefix=settings.api_prefix, tags=["Builds"])
app.include_router(creations.router, prefix=settings.api_prefix, tags=["Creations"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "miniapp.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
