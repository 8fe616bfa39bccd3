from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from .config import get_settings

settings = get_settings()


def build_engine(database_url: str):
    """Create an async engine with pool settings suited to the backend in use."""
    # PgBouncer needs statement caching off; SQLite takes no pool arguments
    if "postgresql" in database_url:
        return create_async_engine(
            database_url,
            echo=settings.debug,
            connect_args={
                "statement_cache_size": 0,
                "prepared_statement_cache_size": 0,
            },
            pool_pre_ping=True,
            pool_recycle=300,
            pool_size=20,
            max_overflow=30,
        )
    return create_async_engine(database_url, echo=settings.debug)


engine = build_engine(settings.database_url)
async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(bind=None):
    from . import models  # noqa: F401  (registers tables on Base.metadata)

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
