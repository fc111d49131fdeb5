from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from feedapi.config import settings
from feedapi.middleware import install_query_counter

# Module-level engine; tests build their own engine and session factory and
# swap them in through dependency overrides.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Register the per-request SQL statement counter on the production engine.
install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory handed to the store adapter (one session per round trip)."""
    return async_session


async def get_db():
    # Read-only API: sessions are closed (and implicitly rolled back), never committed.
    async with async_session() as session:
        yield session
