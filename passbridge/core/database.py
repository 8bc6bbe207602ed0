from fastapi import Depends
from typing import Annotated

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from passbridge.core.config import settings


def build_engine(url: str):
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(
        url,
        pool_size=15,
        max_overflow=15,
        pool_timeout=30,  # Time to wait before raising TimeoutError
        pool_recycle=180,
    )


# Create database engine
async_engine = build_engine(settings.async_database_url)

async_session_maker = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_async_session():
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db(engine=async_engine):
    """Create all tables that do not exist yet."""
    # Import models so they register on the metadata
    import passbridge.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all, checkfirst=True)


AsyncDBSession = Annotated[AsyncSession, Depends(get_async_session)]
