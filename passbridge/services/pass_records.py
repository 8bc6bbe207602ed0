"""
Pass record storage on top of order metadata.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from passbridge.models.meta import OrderMeta
from passbridge.schemas.passes import PassRecord
from passbridge.services.errors import RecordStoreError

logger = logging.getLogger(__name__)

PASS_URL_KEY = "_passource_pass_url"
SERIAL_KEY_PREFIX = "_passource_serial_"
HASHED_SERIAL_KEY_PREFIX = "_passource_hashed_serial_"
PROCESSED_KEY = "_passource_processed"

# Dialects with INSERT .. ON CONFLICT DO UPDATE
UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def attendee_pass_url_key(attendee_id: str) -> str:
    return f"{PASS_URL_KEY}_{attendee_id}"


class PassRecordStore:
    """Reads and writes pass records keyed by order and attendee."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_meta(self, order_id: int, meta_key: str) -> Optional[str]:
        # Column select, so a value upserted by another session is never read from the identity map
        result = await self.db.exec(
            select(OrderMeta.meta_value).where(OrderMeta.order_id == order_id, OrderMeta.meta_key == meta_key)
        )
        return result.first()

    async def set_meta(self, order_id: int, meta_key: str, meta_value: str) -> None:
        """
        Insert or overwrite one metadata value in a single statement.

        Concurrent writers of the same key (the order-level pass URL is shared
        by every attendee) resolve on the unique constraint instead of failing.
        """
        now = datetime.now(timezone.utc)
        insert = UPSERT_INSERTS[self.db.get_bind().dialect.name]
        statement = insert(OrderMeta).values(
            order_id=order_id,
            meta_key=meta_key,
            meta_value=meta_value,
            created_at=now,
            updated_at=now,
        )
        statement = statement.on_conflict_do_update(
            index_elements=["order_id", "meta_key"],
            set_={"meta_value": statement.excluded.meta_value, "updated_at": now},
        )
        await self.db.exec(statement)

    async def get_pass_url(self, order_id: int, attendee_id: Optional[str] = None) -> Optional[str]:
        """
        Look up a stored pass URL.

        The attendee-specific value wins; the order-level value is the fallback
        for orders that were processed before attendee keys existed.
        """
        if attendee_id:
            pass_url = await self.get_meta(order_id, attendee_pass_url_key(attendee_id))
            if pass_url:
                return pass_url
            # Another attendee of this order has its own pass. Falling back here
            # would hand that attendee's pass to this one (see DESIGN.md, order-level fallback).
            if await self.has_attendee_passes(order_id):
                return None
        return await self.get_meta(order_id, PASS_URL_KEY) or None

    async def has_attendee_passes(self, order_id: int) -> bool:
        result = await self.db.exec(
            select(OrderMeta.meta_id).where(
                OrderMeta.order_id == order_id,
                OrderMeta.meta_key.startswith(f"{PASS_URL_KEY}_", autoescape=True),
            )
        )
        return result.first() is not None

    async def get_record(self, order_id: int, attendee_id: str) -> Optional[PassRecord]:
        pass_url = await self.get_pass_url(order_id, attendee_id)
        if not pass_url:
            return None
        return PassRecord(
            order_id=order_id,
            attendee_id=attendee_id,
            pass_url=pass_url,
            serial_number=await self.get_meta(order_id, f"{SERIAL_KEY_PREFIX}{attendee_id}"),
            hashed_serial_number=await self.get_meta(order_id, f"{HASHED_SERIAL_KEY_PREFIX}{attendee_id}"),
        )

    async def save(self, record: PassRecord) -> None:
        """Write the pass URL under both the order-level and the attendee key."""
        try:
            await self.set_meta(record.order_id, PASS_URL_KEY, record.pass_url)
            if record.attendee_id:
                await self.set_meta(record.order_id, attendee_pass_url_key(record.attendee_id), record.pass_url)
                if record.serial_number:
                    await self.set_meta(
                        record.order_id, f"{SERIAL_KEY_PREFIX}{record.attendee_id}", record.serial_number
                    )
                if record.hashed_serial_number:
                    await self.set_meta(
                        record.order_id, f"{HASHED_SERIAL_KEY_PREFIX}{record.attendee_id}",
                        record.hashed_serial_number
                    )
            await self.db.commit()
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to store pass {record.pass_url} for order #{record.order_id}, "
                f"attendee #{record.attendee_id}: {e}"
            )
            await self.db.rollback()
            raise RecordStoreError(f"Failed to store pass record for order #{record.order_id}") from e

    async def is_processed(self, order_id: int) -> bool:
        return await self.get_meta(order_id, PROCESSED_KEY) == "yes"

    async def mark_processed(self, order_id: int) -> None:
        await self.set_meta(order_id, PROCESSED_KEY, "yes")
        await self.db.commit()
