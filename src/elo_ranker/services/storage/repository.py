"""Shared async repository helpers for SQLModel session work."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from elo_ranker.core.errors import PersistenceError

if TYPE_CHECKING:
    from sqlalchemy import Engine

T = TypeVar("T")


class AsyncRepository(Generic[T]):
    """Wrap sync SQLModel session work for async callers.

    Database driver errors are surfaced as ``PersistenceError``.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    async def _run_session(self, fn: Callable[[Session], T]) -> T:
        """Run a sync function inside a Session on a worker thread."""

        def _run() -> T:
            try:
                with Session(self._engine) as session:
                    return fn(session)
            except SQLAlchemyError as e:
                msg = f"Storage failure: {e}"
                raise PersistenceError(msg) from e

        return await asyncio.to_thread(_run)
