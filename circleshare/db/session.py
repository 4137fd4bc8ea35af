from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from circleshare.core.config import settings

engine = create_async_engine(settings.DB_URL, echo=settings.DB_ECHO, pool_pre_ping=True)
SessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    async with SessionLocal() as session:
        yield session
