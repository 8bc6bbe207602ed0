from typing import Any, Dict

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import text

from passbridge.core.config import settings
from passbridge.core.database import async_engine
from passbridge.managers.redis_manager import redis_manager

router = APIRouter()

VERSION = "0.1.0"


async def check_database() -> Dict[str, Any]:
    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        return {"status": "unhealthy", "connected": False, "error": str(e)}
    return {"status": "healthy", "connected": True}


async def check_redis() -> Dict[str, Any]:
    connected = await redis_manager.ping()
    return {
        "status": "healthy" if connected else "unhealthy",
        "connected": connected,
        # Redis only backs the optional creation lock
        "required": settings.PASS_LOCK_ENABLED,
    }


@router.get("/")
async def health_check():
    return {"status": "healthy", "service": settings.PROJECT_NAME, "version": VERSION}


@router.get("/redis")
async def redis_health():
    redis_status = await check_redis()
    if not redis_status["connected"]:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Redis connection failed")
    return {"service": "redis", **redis_status}


@router.get("/database")
async def database_health():
    database_status = await check_database()
    if not database_status["connected"]:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database health check failed: {database_status['error']}"
        )
    return {"service": "database", **database_status}


@router.get("/full")
async def full_health_check():
    services = {"database": await check_database(), "redis": await check_redis()}
    degraded = (
        not services["database"]["connected"]
        or (services["redis"]["required"] and not services["redis"]["connected"])
    )
    health_status = {
        "status": "degraded" if degraded else "healthy",
        "service": settings.PROJECT_NAME,
        "version": VERSION,
        "services": services,
    }
    if degraded:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=health_status)
    return health_status
