"""
db/session.py
-------------
Scoped access to SQLite files.

Design decisions:
  - One engine per operation, per file. Nothing is cached between calls, so no
    long-lived handle can pin a tenant's file or hide a deleted one.
  - NullPool: the connection is really closed when the engine is disposed.
  - The SQLite busy timeout is the only concurrency control. Two writers on
    the same file queue up inside SQLite; if the wait exceeds the timeout the
    "database is locked" error is surfaced as Busy.
  - expire_on_commit=False: returned ORM objects stay readable after the
    session (and engine) are gone.
"""

from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import AsyncIterator, Iterator

from sqlalchemy import MetaData
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from sqlalchemy.schema import CreateIndex, CreateTable

from gpslog.core.exceptions import Busy, Conflict, StorageError, StorageFault

_BUSY_MARKERS = ("database is locked", "database table is locked", "busy")


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{Path(path).resolve()}"


@asynccontextmanager
async def open_database(path: Path, busy_timeout: float = 5.0) -> AsyncIterator[AsyncEngine]:
    """
    Yield an engine bound to a single SQLite file and dispose of it on every
    exit path. Opening a path that does not exist creates an empty database,
    so callers check existence first when absence is meaningful.
    """
    engine = create_async_engine(
        sqlite_url(path),
        poolclass=NullPool,
        connect_args={"timeout": busy_timeout},
    )
    try:
        yield engine
    finally:
        await engine.dispose()


@asynccontextmanager
async def session_scope(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """
    Session on an already-open engine.
    Commits when the block finishes, rolls back on exceptions.
    """
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def open_session(path: Path, busy_timeout: float = 5.0) -> AsyncIterator[AsyncSession]:
    """
    Session over a single SQLite file, engine included.

    Usage:
        async with open_session(layout.registry_path) as session:
            ...
    """
    async with open_database(path, busy_timeout) as engine:
        async with session_scope(engine) as session:
            yield session


async def create_schema(engine: AsyncEngine, metadata: MetaData) -> None:
    """
    CREATE TABLE / INDEX IF NOT EXISTS for every table in `metadata`.
    metadata.create_all() checks then creates, which races when two requests
    initialise the same file; IF NOT EXISTS lets SQLite decide.
    """
    async with engine.begin() as conn:
        for table in metadata.sorted_tables:
            await conn.execute(CreateTable(table, if_not_exists=True))
            for index in table.indexes:
                await conn.execute(CreateIndex(index, if_not_exists=True))


def _message(exc: BaseException) -> str:
    return str(getattr(exc, "orig", None) or exc).lower()


def is_busy_error(exc: BaseException) -> bool:
    message = _message(exc)
    return any(marker in message for marker in _BUSY_MARKERS)


def is_missing_table_error(exc: BaseException) -> bool:
    return "no such table" in _message(exc)


@contextmanager
def translate_errors(operation: str, tenant_id: str | None = None) -> Iterator[None]:
    """
    Turn SQLAlchemy / OS failures raised inside the block into the storage
    taxonomy. StorageError subclasses pass through untouched.
    """
    try:
        yield
    except StorageError:
        raise
    except IntegrityError as exc:
        raise Conflict(
            f"{operation}: constraint violated",
            operation=operation,
            tenant_id=tenant_id,
            cause=exc,
        ) from exc
    except OperationalError as exc:
        if is_busy_error(exc):
            raise Busy(
                f"{operation}: database is busy, retry later",
                operation=operation,
                tenant_id=tenant_id,
                cause=exc,
            ) from exc
        raise StorageFault(
            f"{operation}: database error",
            operation=operation,
            tenant_id=tenant_id,
            cause=exc,
        ) from exc
    except SQLAlchemyError as exc:
        raise StorageFault(
            f"{operation}: database error",
            operation=operation,
            tenant_id=tenant_id,
            cause=exc,
        ) from exc
    except OSError as exc:
        raise StorageFault(
            f"{operation}: filesystem error ({exc.strerror or exc})",
            operation=operation,
            tenant_id=tenant_id,
            cause=exc,
        ) from exc
