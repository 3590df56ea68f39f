"""Core configuration and errors for Elo Ranker."""

from elo_ranker.core.config import (
    DEFAULT_INITIAL_RATING,
    DEFAULT_K_FACTOR,
    RankerConfig,
    RatingConfig,
    UploadConfig,
    VoteConfig,
    load_config,
)
from elo_ranker.core.errors import (
    ConfigurationError,
    InsufficientItemsError,
    InvalidItemError,
    InvalidRatingError,
    InvalidVoteError,
    ItemNotFoundError,
    MissingCredentialsError,
    PersistenceError,
    RankerError,
    StaleWriteError,
    UploadError,
)

__all__ = [
    "DEFAULT_INITIAL_RATING",
    "DEFAULT_K_FACTOR",
    "RankerConfig",
    "RatingConfig",
    "UploadConfig",
    "VoteConfig",
    "load_config",
    "ConfigurationError",
    "InsufficientItemsError",
    "InvalidItemError",
    "InvalidRatingError",
    "InvalidVoteError",
    "ItemNotFoundError",
    "MissingCredentialsError",
    "PersistenceError",
    "RankerError",
    "StaleWriteError",
    "UploadError",
]
