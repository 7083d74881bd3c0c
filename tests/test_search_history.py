"""Tests for per-user search history."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from errors import NotFoundError
from models.search_history_models import ClickedBook
from search_history_service import MAX_ENTRIES_PER_USER, SearchHistoryService, infer_genres

ALICE = "64b0000000000000000000a1"
BOB = "64b0000000000000000000b2"


@pytest.fixture
def history(db) -> SearchHistoryService:
    return SearchHistoryService(db)


async def test_eviction_keeps_most_recent(history, db):
    start = datetime(2024, 1, 1)
    for n in range(105):
        await history.add_search(ALICE, f"query {n}", searched_at=start + timedelta(minutes=n))

    assert await db.search_history.count_documents({"user": ALICE}) == MAX_ENTRIES_PER_USER
    remaining = {e["query"] async for e in db.search_history.find({"user": ALICE})}
    assert remaining == {f"query {n}" for n in range(5, 105)}


async def test_eviction_is_per_user(history, db):
    start = datetime(2024, 1, 1)
    await history.add_search(BOB, "bob's only search", searched_at=start - timedelta(days=1))
    for n in range(101):
        await history.add_search(ALICE, f"query {n}", searched_at=start + timedelta(minutes=n))
    assert await db.search_history.count_documents({"user": BOB}) == 1


async def test_recent_newest_first(history):
    start = datetime(2024, 1, 1)
    for n in range(12):
        await history.add_search(ALICE, f"query {n}", inferred_genres=["fantasy"], searched_at=start + timedelta(hours=n))
    recent = await history.recent(ALICE, limit=10)
    assert [e["query"] for e in recent] == [f"query {n}" for n in range(11, 1, -1)]
    assert recent[0]["inferredGenres"] == ["fantasy"]


class TestRecordClick:
    async def test_appends_breadcrumb(self, history):
        entry = await history.add_search(ALICE, "dune", results_count=3)
        updated = await history.record_click(
            ALICE, entry["id"], ClickedBook(openLibraryId="/works/OL1W", title="Dune", genres=["science fiction"])
        )
        assert len(updated["clickedBooks"]) == 1
        click = updated["clickedBooks"][0]
        assert click["openLibraryId"] == "/works/OL1W"
        assert click["clickedAt"] is not None

    async def test_other_users_entry(self, history):
        entry = await history.add_search(ALICE, "dune")
        with pytest.raises(NotFoundError):
            await history.record_click(BOB, entry["id"], ClickedBook(openLibraryId="OL1W"))


class TestInferGenres:
    def test_filter_and_text(self):
        assert infer_genres("Best Fantasy and horror novels", "Romance") == ["romance", "fantasy", "horror"]

    def test_whole_words_only(self):
        assert infer_genres("histories of the sciences") == []

    def test_nothing(self):
        assert infer_genres(None) == []
