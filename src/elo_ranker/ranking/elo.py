"""Elo rating calculations for Elo Ranker."""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Any

from elo_ranker.core.config import DEFAULT_INITIAL_RATING, DEFAULT_K_FACTOR
from elo_ranker.core.errors import InvalidRatingError


def _require_finite(name: str, value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        msg = f"{name} must be a number, got {type(value).__name__}"
        raise InvalidRatingError(msg)
    if not math.isfinite(value):
        msg = f"{name} must be finite, got {value!r}"
        raise InvalidRatingError(msg)
    return float(value)


def parse_rating(value: Any) -> float:
    """Convert a stored rating into a finite float.

    Storage engines may hand back NUMERIC columns as ``Decimal`` or as
    text-encoded decimals. Arithmetic on those as strings silently corrupts
    ratings, so everything is parsed up front.

    Args:
        value: Raw rating value read from storage.

    Returns:
        Rating as float.

    Raises:
        InvalidRatingError: If the value is missing, not numeric, or not finite.
    """
    if value is None or isinstance(value, bool):
        msg = f"Stored rating is not a number: {value!r}"
        raise InvalidRatingError(msg)

    if isinstance(value, int | float):
        return _require_finite("Stored rating", value)

    if isinstance(value, bytes):
        value = value.decode("ascii", errors="replace")

    try:
        parsed = float(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError) as e:
        msg = f"Stored rating is not a number: {value!r}"
        raise InvalidRatingError(msg) from e

    return _require_finite("Stored rating", parsed)


def expected_score(rating_a: float, rating_b: float) -> float:
    """Calculate expected win probability for item A against item B.

    Uses the standard Elo formula:
    E_A = 1 / (1 + 10^((R_B - R_A) / 400))

    Args:
        rating_a: Rating of item A.
        rating_b: Rating of item B.

    Returns:
        Probability that A wins (0.0 to 1.0).

    Raises:
        InvalidRatingError: If either rating is NaN or infinite.
    """
    rating_a = _require_finite("rating_a", rating_a)
    rating_b = _require_finite("rating_b", rating_b)
    exponent = (rating_b - rating_a) / 400
    # Only ever raise 10 to a non-positive power so huge gaps underflow instead of overflow
    if exponent > 0:
        odds = 10 ** (-exponent)
        return odds / (1.0 + odds)
    return 1.0 / (1.0 + 10**exponent)


def compute_update(
    winner_rating: float,
    loser_rating: float,
    k_factor: float = DEFAULT_K_FACTOR,
) -> tuple[float, float]:
    """Compute new ratings after the winner beats the loser.

    The winner gains exactly what the loser gives up. Ratings are not
    clamped and may drift below zero.

    Args:
        winner_rating: Current rating of the winning item.
        loser_rating: Current rating of the losing item.
        k_factor: Maximum points transferable in one vote.

    Returns:
        Tuple of (new_winner_rating, new_loser_rating).

    Raises:
        InvalidRatingError: On non-finite ratings or a negative/non-finite K.
    """
    k_factor = _require_finite("k_factor", k_factor)
    if k_factor < 0:
        msg = f"k_factor must be non-negative, got {k_factor}"
        raise InvalidRatingError(msg)

    expected_winner = expected_score(winner_rating, loser_rating)
    expected_loser = expected_score(loser_rating, winner_rating)

    # Actual scores: winner 1, loser 0
    new_winner = winner_rating + k_factor * (1.0 - expected_winner)
    new_loser = loser_rating + k_factor * (0.0 - expected_loser)

    return new_winner, new_loser


class EloSystem:
    """Elo parameters bound together for the vote path.

    Attributes:
        initial_rating: Starting rating for new items.
        k_factor: K-factor for rating adjustments.
    """

    def __init__(
        self,
        initial_rating: float = DEFAULT_INITIAL_RATING,
        k_factor: float = DEFAULT_K_FACTOR,
    ) -> None:
        self.initial_rating = _require_finite("initial_rating", initial_rating)
        self.k_factor = _require_finite("k_factor", k_factor)

    def expected(self, rating_a: float, rating_b: float) -> float:
        """Expected score of A against B."""
        return expected_score(rating_a, rating_b)

    def update(self, winner_rating: float, loser_rating: float) -> tuple[float, float]:
        """Compute (new_winner_rating, new_loser_rating) with this system's K."""
        return compute_update(winner_rating, loser_rating, self.k_factor)
