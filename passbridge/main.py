"""
Main FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from passbridge.core.config import settings
from passbridge.core.database import async_session_maker, init_db
from passbridge.managers.event_bus import EventBus
from passbridge.managers.redis_manager import redis_manager
from passbridge.managers.scheduler import DelayedTaskScheduler
from passbridge.routers import diagnostics, health, hooks, settings as settings_router, wallet
from passbridge.services.orchestrator import PassOrchestrator
from passbridge.services.settings_service import SettingsService

# Configure logging
logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up...")
    await init_db()
    async with async_session_maker() as session:
        await SettingsService(session).ensure_defaults()

    http_client = httpx.AsyncClient(
        base_url=settings.PASSSOURCE_API_BASE_URL,
        timeout=settings.PASSSOURCE_TIMEOUT_SECONDS,
    )
    scheduler = DelayedTaskScheduler()
    app.state.orchestrator = PassOrchestrator(
        async_session_maker,
        http_client,
        bus=EventBus(),
        scheduler=scheduler,
        lock_manager=redis_manager if settings.PASS_LOCK_ENABLED else None,
    )
    logger.info("Pass pipeline ready")

    yield  # Control returns to the application during runtime

    logger.info("Shutting down...")
    await scheduler.shutdown()
    await http_client.aclose()
    await redis_manager.close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Wallet pass integration for event ticket checkout",
    version="0.1.0",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=settings.debug,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Include routers
app.include_router(hooks.router, prefix="/hooks", tags=["Hooks"])
app.include_router(wallet.router, prefix="/wallet", tags=["Wallet"])
app.include_router(settings_router.router, prefix="/settings", tags=["Settings"])
app.include_router(diagnostics.router, prefix="/diagnostics", tags=["Diagnostics"])
app.include_router(health.router, prefix="/health", tags=["HealthCheck"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("passbridge.main:app", host="0.0.0.0", port=8000)
