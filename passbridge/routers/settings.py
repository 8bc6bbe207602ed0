import logging

from fastapi import APIRouter, Depends

from passbridge.core.database import AsyncDBSession
from passbridge.dependencies import get_current_admin
from passbridge.schemas.settings import SettingsResponse, SettingsUpdate
from passbridge.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=SettingsResponse)
async def get_settings(
    session: AsyncDBSession,
    current_admin: str = Depends(get_current_admin),
):
    return await SettingsService(session).describe()


@router.put("/", response_model=SettingsResponse)
async def update_settings(
    changes: SettingsUpdate,
    session: AsyncDBSession,
    current_admin: str = Depends(get_current_admin),
):
    logger.info(f"Settings updated by {current_admin}")
    return await SettingsService(session).update(changes)
