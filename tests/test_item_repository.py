"""Tests for item storage."""

import pytest
from sqlmodel import Session

from elo_ranker.core.errors import InsufficientItemsError, ItemNotFoundError, StaleWriteError
from elo_ranker.models import Item
from elo_ranker.services.matchup import RandomMatchup
from elo_ranker.services.storage import RatingWrite, fetch_items_for_update


class TestCreateItem:
    """Tests for item creation."""

    async def test_baseline_rating(self, repository):
        """Test new items start at 1200 with no matches."""
        item = await repository.create_item("Distracted boyfriend", "file:///a.png")

        assert item.id
        assert item.name == "Distracted boyfriend"
        assert item.image_url == "file:///a.png"
        assert item.rating == 1200.0
        assert item.matches_played == 0
        assert item.version == 0

    async def test_ids_are_unique(self, repository):
        """Test each created item gets its own id."""
        first = await repository.create_item("a", None)
        second = await repository.create_item("b", None)
        assert first.id != second.id


class TestFetchItems:
    """Tests for reading items."""

    async def test_fetch_by_id_is_idempotent(self, repository):
        """Test two reads without writes return identical values."""
        created = await repository.create_item("Doge", None)

        first = await repository.fetch_item_by_id(created.id)
        second = await repository.fetch_item_by_id(created.id)

        assert first.model_dump() == second.model_dump()
        assert first.rating == 1200.0

    async def test_fetch_missing_raises(self, repository):
        """Test unknown ids raise ItemNotFoundError."""
        with pytest.raises(ItemNotFoundError, match="nope"):
            await repository.fetch_item_by_id("nope")

    async def test_ordered_by_rating_desc(self, repository):
        """Test leaderboard order is highest rating first."""
        await repository.create_item("low", None, initial_rating=1100.0)
        await repository.create_item("high", None, initial_rating=1300.0)
        await repository.create_item("mid", None, initial_rating=1200.0)

        items = await repository.fetch_all_items_ordered_by_rating_desc()

        assert [item.name for item in items] == ["high", "mid", "low"]

    async def test_random_pair_is_distinct(self, repository):
        """Test random pair returns two different stored items."""
        for name in ("a", "b", "c"):
            await repository.create_item(name, None)

        first, second = await repository.fetch_random_pair(RandomMatchup(seed=7))

        assert first.id != second.id

    async def test_random_pair_needs_two_items(self, repository):
        """Test a single item cannot form a matchup."""
        await repository.create_item("lonely", None)

        with pytest.raises(InsufficientItemsError):
            await repository.fetch_random_pair(RandomMatchup())


class TestAtomicUpdate:
    """Tests for the two-row compare-and-swap write."""

    async def test_updates_both_rows(self, repository):
        """Test both ratings, counters and versions move together."""
        a = await repository.create_item("a", None)
        b = await repository.create_item("b", None)

        await repository.atomic_update_two_items(
            RatingWrite(a.id, 1216.0, 0),
            RatingWrite(b.id, 1184.0, 0),
        )

        a_after = await repository.fetch_item_by_id(a.id)
        b_after = await repository.fetch_item_by_id(b.id)
        assert (a_after.rating, a_after.matches_played, a_after.version) == (1216.0, 1, 1)
        assert (b_after.rating, b_after.matches_played, b_after.version) == (1184.0, 1, 1)

    async def test_stale_version_writes_nothing(self, repository):
        """Test a stale version on one row leaves both rows untouched."""
        a = await repository.create_item("a", None)
        b = await repository.create_item("b", None)

        with pytest.raises(StaleWriteError):
            await repository.atomic_update_two_items(
                RatingWrite(a.id, 1216.0, 0),
                RatingWrite(b.id, 1184.0, 3),
            )

        a_after = await repository.fetch_item_by_id(a.id)
        b_after = await repository.fetch_item_by_id(b.id)
        assert (a_after.rating, a_after.matches_played) == (1200.0, 0)
        assert (b_after.rating, b_after.matches_played) == (1200.0, 0)


class TestFetchForUpdate:
    """Tests for in-transaction reads."""

    async def test_reports_missing_id(self, engine, repository):
        """Test the missing id is named in the error."""
        a = await repository.create_item("a", None)

        with Session(engine) as session, pytest.raises(ItemNotFoundError) as exc_info:
            fetch_items_for_update(session, [a.id, "ghost"])

        assert exc_info.value.item_id == "ghost"

    async def test_returns_items_by_id(self, engine, repository):
        """Test rows come back keyed by id."""
        a = await repository.create_item("a", None)
        b = await repository.create_item("b", None)

        with Session(engine) as session:
            items = fetch_items_for_update(session, [b.id, a.id])

        assert set(items) == {a.id, b.id}
        assert all(isinstance(item, Item) for item in items.values())
