import logging

from sqlmodel.ext.asyncio.session import AsyncSession

from passbridge.models.base import utc_now
from passbridge.models.settings import IntegrationSettings, SETTINGS_ROW_ID
from passbridge.schemas.settings import PassSettings, SettingsResponse, SettingsUpdate

logger = logging.getLogger(__name__)


class SettingsService:
    """Loads and updates the integration settings row."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def ensure_defaults(self) -> IntegrationSettings:
        row = await self.db.get(IntegrationSettings, SETTINGS_ROW_ID)
        if row is None:
            row = IntegrationSettings()
            self.db.add(row)
            await self.db.commit()
            await self.db.refresh(row)
            logger.info("Created default integration settings")
        return row

    async def load(self) -> PassSettings:
        row = await self.ensure_defaults()
        return PassSettings.model_validate(row, from_attributes=True)

    async def update(self, changes: SettingsUpdate) -> SettingsResponse:
        row = await self.ensure_defaults()
        updates = changes.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in updates.items():
            setattr(row, field, value)
        if updates:
            row.updated_at = utc_now()
            self.db.add(row)
            await self.db.commit()
            await self.db.refresh(row)
            logger.info(f"Updated integration settings: {', '.join(sorted(updates))}")
        return SettingsResponse.model_validate(row, from_attributes=True)

    async def describe(self) -> SettingsResponse:
        row = await self.ensure_defaults()
        return SettingsResponse.model_validate(row, from_attributes=True)
