"""Vote transaction coordinator.

Applies one vote end to end: validate the ids, read both ratings in a single
transaction, compute the Elo update, and write both rows atomically. Votes
that share an item are serialized through a compare-and-swap on each row's
version (plus row locks where the backend has them); a vote that loses the
race is rolled back and retried from a fresh read.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlmodel import Session
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from elo_ranker.core.config import VoteConfig
from elo_ranker.core.errors import InvalidVoteError, PersistenceError, StaleWriteError
from elo_ranker.ranking import EloSystem, parse_rating
from elo_ranker.services.storage import RatingWrite, fetch_items_for_update, write_ratings

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

# Conflicts worth re-running the whole vote for
_RETRYABLE = (StaleWriteError, OperationalError)


class VoteState(StrEnum):
    """Lifecycle of a single vote."""

    RECEIVED = "received"
    VALIDATED = "validated"
    RATINGS_FETCHED = "ratings_fetched"
    COMPUTED = "computed"
    PERSISTED = "persisted"
    ABORTED = "aborted"


class VoteResult(BaseModel):
    """Outcome of a committed vote."""

    success: bool = True
    winner_id: str
    loser_id: str
    new_winner_rating: float
    new_loser_rating: float
    winner_delta: float
    loser_delta: float
    attempts: int = 1


def validate_vote(winner_id: object, loser_id: object) -> tuple[str, str]:
    """Check vote ids before any storage access.

    Returns:
        Stripped (winner_id, loser_id).

    Raises:
        InvalidVoteError: If either id is missing/empty or both are the same.
    """
    if not isinstance(winner_id, str) or not winner_id.strip():
        msg = "winnerId is required"
        raise InvalidVoteError(msg)
    if not isinstance(loser_id, str) or not loser_id.strip():
        msg = "loserId is required"
        raise InvalidVoteError(msg)

    winner_id, loser_id = winner_id.strip(), loser_id.strip()
    if winner_id == loser_id:
        msg = "An item cannot be voted against itself"
        raise InvalidVoteError(msg)
    return winner_id, loser_id


class VoteCoordinator:
    """Safely apply votes against persistent storage.

    The coordinator keeps no per-vote state; every call to ``record_vote`` is an
    independent unit of work running on a worker thread.
    """

    def __init__(
        self,
        engine: Engine,
        elo: EloSystem | None = None,
        config: VoteConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize coordinator.

        Args:
            engine: Database engine owning the items table.
            elo: Elo system supplying the K-factor.
            config: Retry and timeout settings.
            clock: Monotonic clock used for the transaction deadline.
        """
        self._engine = engine
        self.elo = elo or EloSystem()
        self.config = config or VoteConfig()
        self._clock = clock

    async def record_vote(self, winner_id: str, loser_id: str) -> VoteResult:
        """Record that ``winner_id`` beat ``loser_id``.

        Args:
            winner_id: Id of the winning item.
            loser_id: Id of the losing item.

        Returns:
            VoteResult with both new ratings.

        Raises:
            InvalidVoteError: Bad ids; storage is never touched.
            ItemNotFoundError: Either id has no item; nothing is written.
            InvalidRatingError: A stored rating is not a finite number.
            PersistenceError: Storage failure, timeout, or retries exhausted.
        """
        log = logger.bind(vote_id=uuid.uuid4().hex[:12])
        log.debug("vote_state", state=VoteState.RECEIVED, winner_id=winner_id, loser_id=loser_id)

        winner_id, loser_id = validate_vote(winner_id, loser_id)
        log = log.bind(winner_id=winner_id, loser_id=loser_id)
        log.debug("vote_state", state=VoteState.VALIDATED)

        return await asyncio.to_thread(self._run_with_retries, winner_id, loser_id, log)

    def _run_with_retries(
        self, winner_id: str, loser_id: str, log: structlog.stdlib.BoundLogger
    ) -> VoteResult:
        def _log_retry(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            log.warning(
                "vote_retry",
                attempt=retry_state.attempt_number,
                reason=type(exc).__name__,
            )

        retrying = Retrying(
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_exponential(
                multiplier=self.config.backoff_min_seconds,
                min=self.config.backoff_min_seconds,
                max=self.config.backoff_max_seconds,
            ),
            retry=retry_if_exception_type(_RETRYABLE),
            before_sleep=_log_retry,
            reraise=True,
        )

        try:
            result = retrying(self._attempt, winner_id, loser_id, log)
        except _RETRYABLE as e:
            log.error("vote_failed", attempts=self.config.max_attempts, error=str(e))
            msg = f"Vote could not be applied after {self.config.max_attempts} attempts: {e}"
            raise PersistenceError(msg) from e
        except PersistenceError:
            raise
        except SQLAlchemyError as e:
            log.error("vote_failed", error=str(e))
            msg = f"Vote failed in storage: {e}"
            raise PersistenceError(msg) from e

        result.attempts = retrying.statistics.get("attempt_number", 1)
        return result

    def _attempt(
        self, winner_id: str, loser_id: str, log: structlog.stdlib.BoundLogger
    ) -> VoteResult:
        started = self._clock()

        with Session(self._engine) as session:
            try:
                items = fetch_items_for_update(session, [winner_id, loser_id])
                winner, loser = items[winner_id], items[loser_id]
                winner_rating = parse_rating(winner.rating)
                loser_rating = parse_rating(loser.rating)
                log.debug(
                    "vote_state",
                    state=VoteState.RATINGS_FETCHED,
                    winner_rating=winner_rating,
                    loser_rating=loser_rating,
                )

                new_winner, new_loser = self.elo.update(winner_rating, loser_rating)
                log.debug(
                    "vote_state",
                    state=VoteState.COMPUTED,
                    expected_winner=round(self.elo.expected(winner_rating, loser_rating), 4),
                    new_winner_rating=new_winner,
                    new_loser_rating=new_loser,
                )

                write_ratings(
                    session,
                    [
                        RatingWrite(winner_id, new_winner, winner.version),
                        RatingWrite(loser_id, new_loser, loser.version),
                    ],
                )
                self._check_deadline(started)
                session.commit()
            except Exception as e:
                session.rollback()
                log.info("vote_state", state=VoteState.ABORTED, reason=type(e).__name__)
                raise

        log.info(
            "vote_state",
            state=VoteState.PERSISTED,
            winner_change=round(new_winner - winner_rating, 2),
            loser_change=round(new_loser - loser_rating, 2),
        )
        return VoteResult(
            winner_id=winner_id,
            loser_id=loser_id,
            new_winner_rating=new_winner,
            new_loser_rating=new_loser,
            winner_delta=new_winner - winner_rating,
            loser_delta=new_loser - loser_rating,
        )

    def _check_deadline(self, started: float) -> None:
        elapsed = self._clock() - started
        if elapsed > self.config.transaction_timeout_seconds:
            msg = (
                f"Vote transaction exceeded {self.config.transaction_timeout_seconds}s "
                f"({elapsed:.2f}s); rolled back"
            )
            raise PersistenceError(msg)
