"""Storage and vote tests against DuckDB, the default database backend."""

import asyncio

import pytest
from sqlalchemy import text

from elo_ranker.ranking import compute_update
from elo_ranker.services.storage import create_db_engine, init_db


@pytest.fixture
def engine(tmp_path):
    """File-backed DuckDB engine; overrides the SQLite engine from conftest."""
    engine = create_db_engine(f"duckdb:///{tmp_path / 'ranker.duckdb'}")
    init_db(engine)
    yield engine
    engine.dispose()


async def _make_items(repository, *ratings):
    return [
        await repository.create_item(f"item-{i}", None, initial_rating=rating)
        for i, rating in enumerate(ratings)
    ]


class TestDuckDBSchema:
    """Tests for the DuckDB table layout."""

    def test_rating_is_double_precision(self, engine):
        """Test ratings are stored as 64-bit floats."""
        with engine.connect() as conn:
            data_type = conn.execute(
                text(
                    "SELECT data_type FROM information_schema.columns "
                    "WHERE table_name = 'items' AND column_name = 'rating'"
                )
            ).scalar_one()

        assert data_type == "DOUBLE"


class TestDuckDBVotes:
    """Tests for applying votes on DuckDB."""

    async def test_single_vote(self, coordinator, repository):
        """Test 1200 vs 1200 produces 1216 / 1184."""
        winner, loser = await _make_items(repository, 1200.0, 1200.0)

        result = await coordinator.record_vote(winner.id, loser.id)

        assert result.new_winner_rating == pytest.approx(1216.0)
        stored_winner = await repository.fetch_item_by_id(winner.id)
        stored_loser = await repository.fetch_item_by_id(loser.id)
        assert stored_winner.matches_played == 1
        assert stored_winner.version == 1
        assert stored_loser.rating == pytest.approx(1184.0)

    async def test_stored_rating_equals_returned_rating(self, coordinator, repository):
        """Test repeated votes persist exactly the ratings the coordinator returns."""
        a, b = await _make_items(repository, 1200.0, 1200.0)

        for _ in range(3):
            result = await coordinator.record_vote(a.id, b.id)

        stored_a = await repository.fetch_item_by_id(a.id)
        stored_b = await repository.fetch_item_by_id(b.id)
        assert stored_a.rating == result.new_winner_rating
        assert stored_b.rating == result.new_loser_rating
        assert (stored_a.rating - 1200.0) + (stored_b.rating - 1200.0) == pytest.approx(
            0.0, abs=1e-9
        )

    async def test_concurrent_votes_sharing_an_item(self, coordinator, repository):
        """Test two simultaneous votes on X both land, in some sequential order."""
        x, a, b = await _make_items(repository, 1200.0, 1200.0, 1200.0)

        await asyncio.gather(
            coordinator.record_vote(x.id, a.id),
            coordinator.record_vote(b.id, x.id),
        )

        # X beats A first, then B beats X
        x_mid, _ = compute_update(1200.0, 1200.0)
        _, x_first_order = compute_update(1200.0, x_mid)
        # B beats X first, then X beats A
        _, x_mid = compute_update(1200.0, 1200.0)
        x_second_order, _ = compute_update(x_mid, 1200.0)

        stored = await repository.fetch_item_by_id(x.id)
        assert stored.matches_played == 2
        assert any(
            stored.rating == pytest.approx(candidate)
            for candidate in (x_first_order, x_second_order)
        )
        items = await repository.fetch_all_items()
        assert sum(item.rating for item in items) == pytest.approx(1200.0 * 3, abs=1e-6)
