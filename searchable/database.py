from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession
from sqlalchemy.orm import declarative_base, sessionmaker
from searchable.core.config import settings

Base = declarative_base()


def _unicode_lower(value):
    if isinstance(value, str):
        return value.lower()
    return value


def _install_sqlite_functions(dbapi_connection, connection_record):
    # SQLite's built-in lower() and LIKE only fold ASCII letters.
    dbapi_connection.create_function("lower", 1, _unicode_lower)


def register_sqlite_functions(async_engine: AsyncEngine) -> AsyncEngine:
    """Replace ``lower()`` on every new SQLite connection with a Unicode-aware one."""
    if async_engine.dialect.name == "sqlite":
        event.listen(async_engine.sync_engine, "connect", _install_sqlite_functions)
    return async_engine


engine = register_sqlite_functions(
    create_async_engine(
        settings.DATABASE_URL,
        echo=settings.SQL_ECHO,
        pool_pre_ping=True,
    )
)

AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

async def get_db():
    async with AsyncSessionLocal() as session:
        yield session

async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
