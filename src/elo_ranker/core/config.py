"""Configuration schemas and loading for Elo Ranker."""

from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from elo_ranker.core.errors import MissingCredentialsError

DEFAULT_INITIAL_RATING = 1200.0
DEFAULT_K_FACTOR = 32.0

# Environment variable -> dotted config path
ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "ELO_RANKER_DATABASE_URL": ("database_url",),
    "IMAGEKIT_PUBLIC_KEY": ("uploads", "imagekit_public_key"),
    "IMAGEKIT_PRIVATE_KEY": ("uploads", "imagekit_private_key"),
    "IMAGEKIT_URL_ENDPOINT": ("uploads", "imagekit_url_endpoint"),
}


class RatingConfig(BaseModel):
    """Elo parameters.

    Attributes:
        initial_rating: Rating assigned to newly created items.
        k_factor: Maximum rating points transferable per vote.
    """

    initial_rating: float = DEFAULT_INITIAL_RATING
    k_factor: float = Field(default=DEFAULT_K_FACTOR, ge=0)

    @field_validator("initial_rating", "k_factor")
    @classmethod
    def validate_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            msg = "Rating parameters must be finite numbers"
            raise ValueError(msg)
        return v


class VoteConfig(BaseModel):
    """Vote transaction settings.

    Attributes:
        max_attempts: Attempts per vote before giving up on concurrent conflicts.
        transaction_timeout_seconds: Upper bound for one attempt, also used as the
            SQLite lock-wait timeout.
        backoff_min_seconds: Minimum wait between attempts.
        backoff_max_seconds: Maximum wait between attempts.
    """

    max_attempts: int = Field(default=5, ge=1)
    transaction_timeout_seconds: float = Field(default=10.0, gt=0)
    backoff_min_seconds: float = Field(default=0.05, ge=0)
    backoff_max_seconds: float = Field(default=1.0, ge=0)


class UploadConfig(BaseModel):
    """Image upload backend configuration."""

    backend: Literal["imagekit", "local"] = "local"
    folder: str = "elo-ranker-memes"
    local_dir: str = "./data/uploads"
    imagekit_public_key: str | None = None
    imagekit_private_key: str | None = None
    imagekit_url_endpoint: str | None = None

    def require_private_key(self) -> str:
        """Get the ImageKit private key or fail with a configuration error."""
        if not self.imagekit_private_key:
            raise MissingCredentialsError("imagekit_private_key", "IMAGEKIT_PRIVATE_KEY")
        return self.imagekit_private_key


class RankerConfig(BaseModel):
    """Complete service configuration."""

    database_url: str = "duckdb:///./data/elo_ranker.duckdb"
    rating: RatingConfig = Field(default_factory=RatingConfig)
    vote: VoteConfig = Field(default_factory=VoteConfig)
    uploads: UploadConfig = Field(default_factory=UploadConfig)
    seed: int | None = None

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v or "://" not in v:
            msg = "database_url must be an SQLAlchemy URL (e.g. sqlite:///ranker.db)"
            raise ValueError(msg)
        return v

    def safe_dump(self) -> dict:
        """Dump config without secrets."""
        return self.model_dump(
            exclude={"uploads": {"imagekit_private_key"}},
        )


def _apply_env_overrides(data: dict) -> dict:
    for env_var, path in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if not value:
            continue
        target = data
        for key in path[:-1]:
            target = target.setdefault(key, {})
        target[path[-1]] = value
    return data


def load_config(path: str | Path | None = None) -> RankerConfig:
    """Load and validate configuration from a YAML file and the environment.

    Values from a ``.env`` file and the process environment override the file.

    Args:
        path: Path to YAML configuration file. If None, defaults are used.

    Returns:
        Validated RankerConfig instance.

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist.
        pydantic.ValidationError: If config is invalid.
    """
    load_dotenv()

    data: dict = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg)

        with config_path.open() as f:
            data = yaml.safe_load(f) or {}

    return RankerConfig.model_validate(_apply_env_overrides(data))
