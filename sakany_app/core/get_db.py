from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from .settings import settings


def build_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        # aiosqlite connections are tied to the loop that opened them
        return create_async_engine(url, echo=False, poolclass=NullPool)
    return create_async_engine(url, echo=False, pool_pre_ping=True)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


async_engine: AsyncEngine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = build_sessionmaker(async_engine)


async def get_db_async():
    session = AsyncSessionLocal()
    try:
        yield session
    finally:
        await session.close()


Base = declarative_base()


async def create_tables(engine: AsyncEngine = async_engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
