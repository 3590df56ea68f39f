"""Matchup selection strategies."""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from elo_ranker.core.errors import InsufficientItemsError
from elo_ranker.models import Item

MIN_MATCHUP_SIZE = 2


@runtime_checkable
class MatchupStrategy(Protocol):
    """Protocol for choosing which two items are shown next.

    Implementations must return exactly two distinct items or raise
    ``InsufficientItemsError``.
    """

    def select_pair(self, items: Sequence[Item]) -> tuple[Item, Item]:
        """Select two distinct items.

        Args:
            items: All candidate items.

        Returns:
            Tuple of two different items.
        """
        ...


class RandomMatchup:
    """Uniform random pairing over the full item set."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)  # noqa: S311

    def select_pair(self, items: Sequence[Item]) -> tuple[Item, Item]:
        unique = list({item.id: item for item in items}.values())
        if len(unique) < MIN_MATCHUP_SIZE:
            raise InsufficientItemsError(len(unique))
        first, second = self._rng.sample(unique, MIN_MATCHUP_SIZE)
        return first, second
