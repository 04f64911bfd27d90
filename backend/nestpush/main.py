"""Main FastAPI application for the push notification service."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .database import init_db, close_db, async_session
from .errors import StorageError
from .routers import devices_router, push_router, preferences_router, records_router, history_router
from .services.notifier import dispatcher_notifier
from .services.push_gateway import push_gateway, PushConfig
from .services.scheduler import scheduler_service

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting NestPush")

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    await push_gateway.configure(PushConfig(
        server_key=settings.fcm_server_key or "",
        endpoint=settings.fcm_endpoint,
        timeout=settings.push_timeout_seconds,
    ))

    # Periodic token sweep
    scheduler_service.start(async_session)

    yield

    # Shutdown
    await dispatcher_notifier.drain()
    scheduler_service.stop()
    await push_gateway.aclose()
    await close_db()
    logger.info("Shutdown complete")


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors with the API's error shape."""
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_errors(exc)},
    )


async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "details": str(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="NestPush",
        description="Push notification delivery - device tokens, preferences, audience and fan-out",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Browsers register tokens and call the dispatcher cross-origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StorageError, storage_error_handler)

    app.include_router(devices_router)
    app.include_router(push_router)
    app.include_router(preferences_router)
    app.include_router(records_router)
    app.include_router(history_router)

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "push_configured": push_gateway.configured,
        }

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
