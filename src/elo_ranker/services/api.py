"""Request boundary for the ranking service.

Exposes get-matchup, get-rankings, submit-vote and submit-new-item, and turns
domain failures into structured error responses.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel

from elo_ranker.core.config import RankerConfig
from elo_ranker.core.errors import InvalidItemError, RankerError
from elo_ranker.models import Item
from elo_ranker.ranking import EloSystem, create_elo_system
from elo_ranker.services.matchup import MatchupStrategy, RandomMatchup
from elo_ranker.services.storage import ItemRepository, create_db_engine, init_db
from elo_ranker.services.uploads import ImageUploader, create_uploader, make_upload_name
from elo_ranker.services.vote import VoteCoordinator, VoteResult

logger = structlog.get_logger()

T = TypeVar("T")


class RankingEntry(BaseModel):
    """One leaderboard row."""

    rank: int
    id: str
    name: str
    image_url: str | None
    rating: float
    matches_played: int


class ErrorResponse(BaseModel):
    """Caller-visible failure."""

    success: bool = False
    error: str
    message: str
    retryable: bool = False

    @classmethod
    def from_error(cls, error: RankerError) -> ErrorResponse:
        return cls(error=error.kind, message=error.message, retryable=error.retryable)


class RankingService:
    """Coordinates storage, voting, matchups and uploads for callers."""

    def __init__(
        self,
        repository: ItemRepository,
        coordinator: VoteCoordinator,
        uploader: ImageUploader,
        matchup: MatchupStrategy | None = None,
        elo: EloSystem | None = None,
    ) -> None:
        self.repository = repository
        self.coordinator = coordinator
        self.uploader = uploader
        self.matchup = matchup or RandomMatchup()
        self.elo = elo or coordinator.elo

    async def get_matchup(self) -> tuple[Item, Item]:
        """Two distinct items to compare."""
        return await self.repository.fetch_random_pair(self.matchup)

    async def get_rankings(self) -> list[RankingEntry]:
        """All items ordered by rating, highest first."""
        items = await self.repository.fetch_all_items_ordered_by_rating_desc()
        return [
            RankingEntry(
                rank=i,
                id=item.id,
                name=item.name,
                image_url=item.image_url,
                rating=item.rating,
                matches_played=item.matches_played,
            )
            for i, item in enumerate(items, 1)
        ]

    async def submit_vote(self, winner_id: str, loser_id: str) -> VoteResult:
        return await self.coordinator.record_vote(winner_id, loser_id)

    async def submit_new_item(
        self, name: str, image_bytes: bytes | None, file_name: str | None = None
    ) -> Item:
        """Upload an image and store it as a new item at the baseline rating.

        Raises:
            InvalidItemError: If the name or the image is empty.
            UploadError: If the uploader fails; no item is created.
        """
        if not image_bytes:
            msg = "No image file uploaded."
            raise InvalidItemError(msg)
        if not name or not name.strip():
            msg = "Item name is required."
            raise InvalidItemError(msg)

        url = await self.uploader.upload(image_bytes, file_name or make_upload_name())
        return await self.repository.create_item(
            name.strip(),
            url,
            initial_rating=self.elo.initial_rating,
        )

    async def handle(
        self, operation: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T | ErrorResponse:
        """Run an operation and convert domain errors into an ErrorResponse."""
        try:
            return await operation(*args, **kwargs)
        except RankerError as e:
            logger.warning(
                "request_failed",
                operation=getattr(operation, "__name__", str(operation)),
                error=e.kind,
                message=e.message,
            )
            return ErrorResponse.from_error(e)

    async def close(self) -> None:
        """Release uploader and database resources."""
        await self.uploader.close()
        self.repository.engine.dispose()


def build_service(config: RankerConfig) -> RankingService:
    """Wire the service from configuration.

    The engine is created once here and shared by the repository and the
    vote coordinator.
    """
    engine = create_db_engine(
        config.database_url,
        lock_timeout=config.vote.transaction_timeout_seconds,
    )
    init_db(engine)
    elo = create_elo_system(config)
    return RankingService(
        repository=ItemRepository(engine),
        coordinator=VoteCoordinator(engine, elo=elo, config=config.vote),
        uploader=create_uploader(config.uploads),
        matchup=RandomMatchup(seed=config.seed),
        elo=elo,
    )
