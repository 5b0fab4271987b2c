from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from checkout_service.core.config import Settings
from checkout_service.models.base import Base
from checkout_service.models.order import Order  # noqa: F401
from checkout_service.models.order_item import OrderItem  # noqa: F401


def build_engine(settings: Settings) -> AsyncEngine:
    options = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
    if settings.DB_ISOLATION_LEVEL:
        options["isolation_level"] = settings.DB_ISOLATION_LEVEL
    logger.info(
        "Creating orders DB engine with isolation_level='{isolation_level}'",
        isolation_level=settings.DB_ISOLATION_LEVEL or "driver default",
    )
    return create_async_engine(settings.DATABASE_URL, **options)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,  # summary is read after commit
        class_=AsyncSession,
        autoflush=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    logger.info("Ensuring orders DB schema")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
