"""Shared fixtures for storage-backed tests."""

import pytest

from elo_ranker.core.config import VoteConfig
from elo_ranker.ranking import EloSystem
from elo_ranker.services.storage import ItemRepository, create_db_engine, init_db
from elo_ranker.services.vote import VoteCoordinator


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite engine with the items table created."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'ranker.db'}", lock_timeout=10.0)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine):
    return ItemRepository(engine)


@pytest.fixture
def vote_config():
    """Vote settings with near-zero backoff so retries don't slow tests down."""
    return VoteConfig(max_attempts=25, backoff_min_seconds=0.001, backoff_max_seconds=0.02)


@pytest.fixture
def coordinator(engine, vote_config):
    elo = EloSystem(initial_rating=1200.0, k_factor=32.0)
    return VoteCoordinator(engine, elo=elo, config=vote_config)
