"""Ranking module for Elo Ranker.

Provides the Elo rating engine used by the vote path.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from elo_ranker.ranking.elo import (
    EloSystem,
    compute_update,
    expected_score,
    parse_rating,
)

if TYPE_CHECKING:
    from elo_ranker.core.config import RankerConfig


def create_elo_system(config: RankerConfig) -> EloSystem:
    """Create the Elo system from config.

    Args:
        config: Service configuration.

    Returns:
        Configured Elo system.
    """
    return EloSystem(
        initial_rating=config.rating.initial_rating,
        k_factor=config.rating.k_factor,
    )


__all__ = [
    "EloSystem",
    "compute_update",
    "create_elo_system",
    "expected_score",
    "parse_rating",
]
