from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def timestamp_field():
    """Timezone-aware timestamp column defaulting to the current UTC time."""
    return Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class BaseModel(SQLModel):
    """Timestamps for the tables this service writes to."""
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()
