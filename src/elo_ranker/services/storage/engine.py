"""Database engine construction for item storage."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy.engine import make_url
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel, create_engine

from elo_ranker.models import Item  # noqa: F401  (registers the table)

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

_EMBEDDED_BACKENDS = ("sqlite", "duckdb")


def create_db_engine(database_url: str, lock_timeout: float = 10.0) -> Engine:
    """Create the SQLAlchemy engine shared by the repository and vote coordinator.

    Embedded file databases (SQLite, DuckDB) get their parent directory created
    and use NullPool so every session opens its own connection.

    Args:
        database_url: SQLAlchemy database URL.
        lock_timeout: Seconds a connection waits on a locked database or row
            before failing.

    Returns:
        Configured engine.
    """
    url = make_url(database_url)
    backend = url.get_backend_name()
    kwargs: dict[str, Any] = {}

    if backend in _EMBEDDED_BACKENDS:
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        kwargs["poolclass"] = NullPool

    connect_args = lock_wait_connect_args(backend, lock_timeout)
    if connect_args:
        kwargs["connect_args"] = connect_args

    engine = create_engine(database_url, **kwargs)
    logger.info("db_engine_created", backend=backend, database=url.database)
    return engine


def init_db(engine: Engine) -> None:
    """Create tables if they don't exist."""
    SQLModel.metadata.create_all(engine)


def supports_row_locks(engine: Engine) -> bool:
    """Whether SELECT ... FOR UPDATE takes real row locks on this backend."""
    return engine.dialect.name in ("postgresql", "mysql", "mariadb", "oracle")


def lock_wait_connect_args(backend: str, lock_timeout: float) -> dict[str, Any]:
    """Driver arguments that bound how long a connection waits for a lock.

    SQLite takes a busy timeout in seconds. PostgreSQL gets a session-level
    ``lock_timeout`` in milliseconds, so a blocked ``SELECT ... FOR UPDATE``
    fails with an OperationalError instead of waiting forever. DuckDB never
    waits on locks; conflicting writers fail immediately.
    """
    if backend == "sqlite":
        return {"timeout": lock_timeout, "check_same_thread": False}
    if backend == "postgresql":
        return {"options": f"-c lock_timeout={int(lock_timeout * 1000)}"}
    return {}
