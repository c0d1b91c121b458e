import os
import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncContextManager, Callable, NoReturn, Union

from sqlalchemy import event
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from ..errors import StoreError, StoreUnavailable

Gated = Callable[[], AsyncContextManager[None]]

# plain URL prefix -> async driver
_ASYNC_DRIVERS = (
    ("sqlite://", "sqlite+aiosqlite://"),
    ("postgresql://", "postgresql+asyncpg://"),
    ("postgres://", "postgresql+asyncpg://"),
)


def async_url(url: str) -> str:
    for plain, driver in _ASYNC_DRIVERS:
        if url.startswith(plain):
            return driver + url[len(plain):]
    return url


@dataclass
class Database:
    engine: AsyncEngine
    sessions: async_sessionmaker
    gate: asyncio.Semaphore

    # never hold more sessions than the pool can serve
    @asynccontextmanager
    async def gated(self):
        await self.gate.acquire()
        try:
            yield
        finally:
            self.gate.release()

    async def dispose(self) -> None:
        await self.engine.dispose()


def _sqlite_pragmas(dbapi_connection, _):
    cur = dbapi_connection.cursor()
    cur.execute("PRAGMA journal_mode=WAL;")
    cur.execute("PRAGMA busy_timeout=5000;")
    cur.execute("PRAGMA synchronous=NORMAL;")
    cur.close()


def open_database(database_url: str) -> Database:
    url = async_url(database_url)
    kw = dict(future=True, pool_pre_ping=True)

    gate_limit = int(os.getenv("DB_GATE_LIMIT", "10"))
    if url.startswith("postgresql+asyncpg://"):
        pool_size = int(os.getenv("DB_POOL_SIZE", "10"))
        kw.update(
            pool_size=pool_size,
            max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),
            pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
        )
        gate_limit = int(os.getenv("DB_GATE_LIMIT", pool_size))

    engine = create_async_engine(url, **kw)
    if url.startswith("sqlite+aiosqlite://"):
        event.listen(engine.sync_engine, "connect", _sqlite_pragmas)

    sessions = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return Database(engine, sessions, asyncio.Semaphore(max(1, gate_limit)))


def raise_for_db(exc: Union[SQLAlchemyError, OSError], what: str) -> NoReturn:
    if isinstance(exc, (OperationalError, InterfaceError, OSError)):
        raise StoreUnavailable(
            f"{what}: database unreachable ({exc.__class__.__name__})"
        ) from exc
    raise StoreError(f"{what} failed: {exc}") from exc
