"""Elo Ranker.

Pairwise-comparison ranking service: fetch two items, vote for a winner,
and update both Elo ratings in a single transaction.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
