"""Database persistence for ranked items."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import update
from sqlmodel import Session, col, select

from elo_ranker.core.config import DEFAULT_INITIAL_RATING
from elo_ranker.core.errors import ItemNotFoundError, StaleWriteError
from elo_ranker.models import Item

from .engine import supports_row_locks
from .repository import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from elo_ranker.services.matchup import MatchupStrategy

logger = structlog.get_logger()


@dataclass(frozen=True)
class RatingWrite:
    """A rating write guarded by the version the rating was read at."""

    item_id: str
    new_rating: float
    expected_version: int


def fetch_items_for_update(session: Session, item_ids: Sequence[str]) -> dict[str, Item]:
    """Read items inside the session's current transaction.

    Rows are read in id order and locked ``FOR UPDATE`` where the backend
    supports row locks, so two votes sharing an item queue up on the same lock
    in the same order.

    Raises:
        ItemNotFoundError: For the first id with no stored row.
    """
    statement = select(Item).where(col(Item.id).in_(list(item_ids))).order_by(col(Item.id))
    if supports_row_locks(session.get_bind()):
        statement = statement.with_for_update()

    found = {item.id: item for item in session.exec(statement).all()}
    for item_id in item_ids:
        if item_id not in found:
            raise ItemNotFoundError(item_id)
    return found


def write_ratings(session: Session, writes: Sequence[RatingWrite]) -> None:
    """Apply rating writes with compare-and-swap on each row's version.

    Each row gets the new rating, one more match played, and a bumped
    version. Nothing is committed here.

    Raises:
        StaleWriteError: If a row's version no longer matches what was read.
    """
    connection = session.connection()
    for write in sorted(writes, key=lambda w: w.item_id):
        statement = (
            update(Item)
            .where(
                col(Item.id) == write.item_id,
                col(Item.version) == write.expected_version,
            )
            .values(
                rating=write.new_rating,
                matches_played=col(Item.matches_played) + 1,
                version=col(Item.version) + 1,
            )
            .returning(col(Item.id))
        )
        if connection.execute(statement).first() is None:
            raise StaleWriteError(write.item_id)


class ItemRepository(AsyncRepository):
    """Persist and query ranked items."""

    def __init__(self, engine: Engine) -> None:
        super().__init__(engine)

    async def create_item(
        self,
        name: str,
        image_url: str | None,
        initial_rating: float = DEFAULT_INITIAL_RATING,
        initial_matches: int = 0,
    ) -> Item:
        """Insert a new item at the baseline rating."""

        def _create(session: Session) -> Item:
            item = Item(
                name=name,
                image_url=image_url,
                rating=initial_rating,
                matches_played=initial_matches,
            )
            session.add(item)
            session.commit()
            session.refresh(item)
            return item

        item = await self._run_session(_create)
        logger.info("item_created", item_id=item.id, name=item.name, rating=item.rating)
        return item

    async def fetch_item_by_id(self, item_id: str) -> Item:
        """Get a single item.

        Raises:
            ItemNotFoundError: If no item has this id.
        """

        def _get(session: Session) -> Item | None:
            return session.get(Item, item_id)

        item = await self._run_session(_get)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    async def fetch_all_items(self) -> list[Item]:
        """Get every item in insertion-independent order."""

        def _get(session: Session) -> list[Item]:
            return list(session.exec(select(Item)).all())

        return await self._run_session(_get)

    async def fetch_all_items_ordered_by_rating_desc(self) -> list[Item]:
        """Get leaderboard sorted by rating."""

        def _get(session: Session) -> list[Item]:
            statement = select(Item).order_by(col(Item.rating).desc(), col(Item.name))
            return list(session.exec(statement).all())

        return await self._run_session(_get)

    async def fetch_random_pair(self, strategy: MatchupStrategy) -> tuple[Item, Item]:
        """Pick two distinct items with the given matchup strategy.

        Raises:
            InsufficientItemsError: If fewer than two items exist.
        """
        items = await self.fetch_all_items()
        first, second = strategy.select_pair(items)
        logger.debug("matchup_selected", first=first.id, second=second.id)
        return first, second

    async def atomic_update_two_items(self, first: RatingWrite, second: RatingWrite) -> None:
        """Write two ratings in one transaction, or neither.

        Raises:
            StaleWriteError: If either row changed since its version was read.
            PersistenceError: On any other storage failure.
        """

        def _update(session: Session) -> None:
            try:
                write_ratings(session, [first, second])
                session.commit()
            except Exception:
                session.rollback()
                raise

        await self._run_session(_update)
