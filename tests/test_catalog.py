"""Tests for the Open Library client and search aggregation."""

from __future__ import annotations

import httpx
import pytest

from catalog_service import filter_by_year, search_books
from errors import (
    InvalidInputError,
    UpstreamRejectedError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from models.book_models import BookSummary

from conftest import make_catalog, search_doc


def _summary(book_id: str, year):
    return BookSummary(id=book_id, title=book_id, publishYear=year)


class TestSummaryNormalization:
    def test_full_document(self, catalog):
        doc = search_doc(
            "/works/OL1W", "1984",
            authors=["George Orwell", "Someone Else"],
            year=1949,
            cover=42,
            isbn=["111", "222"],
            subjects=["Dystopia", "Fiction", "Politics", "Classics", "Novels", "Extra"],
        )
        book = catalog.to_summary(doc)
        assert book.id == "/works/OL1W"
        assert book.author == "George Orwell"
        assert book.publishYear == 1949
        assert book.coverUrl == "https://covers.test/b/id/42-M.jpg"
        assert book.isbn == "111"
        assert book.genres == ["Dystopia", "Fiction", "Politics", "Classics", "Novels"]
        assert book.description == "Dystopia, Fiction, Politics"

    def test_sparse_document(self, catalog):
        book = catalog.to_summary({"key": "/works/OL9W"})
        assert book.title == "Unknown Title"
        assert book.author == "Unknown Author"
        assert book.publishYear is None
        assert book.coverUrl is None
        assert book.isbn is None
        assert book.genres == []
        assert book.description == "No description available"


class TestSearch:
    async def test_genre_becomes_subject_token(self, catalog, catalog_requests):
        await catalog.search("dune", genre="science fiction")
        assert catalog_requests[0].url.params["q"] == "dune subject:science fiction"

    async def test_genre_only(self, catalog, catalog_requests):
        await catalog.search("", genre="fantasy")
        assert catalog_requests[0].url.params["q"] == "subject:fantasy"

    async def test_page_and_total(self, catalog, catalog_requests):
        page = await catalog.search("orwell", page=2, limit=5)
        params = catalog_requests[0].url.params
        assert params["page"] == "2"
        assert params["limit"] == "5"
        assert page.totalFound == 2
        assert [b.title for b in page.items] == ["1984", "Animal Farm"]


class TestSearchBooks:
    async def test_requires_query_or_filter(self, catalog, catalog_requests):
        with pytest.raises(InvalidInputError):
            await search_books(catalog, "  ")
        assert catalog_requests == []

    async def test_year_only_uses_broad_query(self, catalog, catalog_requests):
        result = await search_books(catalog, None, year_from=1946)
        assert catalog_requests[0].url.params["q"] == "fiction"
        assert [b["title"] for b in result["data"]] == ["1984"]
        assert result["count"] == 1
        assert result["total"] == 2
        assert result["filters"] == {"genre": None, "yearFrom": 1946, "yearTo": None}

    async def test_plain_query(self, catalog):
        result = await search_books(catalog, "1984")
        assert result["success"] is True
        assert result["page"] == 1
        assert result["data"][0]["title"] == "1984"


def test_filter_by_year_bounds():
    books = [_summary("a", 1900), _summary("b", 1950), _summary("c", None), _summary("d", 2000)]
    assert [b.id for b in filter_by_year(books, 1940, 1990)] == ["b"]
    assert [b.id for b in filter_by_year(books, None, 1950)] == ["a", "b"]
    assert [b.id for b in filter_by_year(books, 1950, None)] == ["b", "d"]
    assert filter_by_year(books, None, None) == books


class TestFailureModes:
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(UpstreamTimeoutError):
            await make_catalog(handler).search("dune")

    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("no route", request=request)

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await make_catalog(handler).search("dune")
        assert not isinstance(exc_info.value, UpstreamTimeoutError)
        assert exc_info.value.status_code == 503

    async def test_rejected(self):
        catalog = make_catalog(lambda request: httpx.Response(500, json={}))
        with pytest.raises(UpstreamRejectedError) as exc_info:
            await catalog.search("dune")
        assert exc_info.value.status_code == 502

    async def test_unreadable_body(self):
        catalog = make_catalog(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
        with pytest.raises(UpstreamRejectedError):
            await catalog.search("dune")


class TestSuggestAndDetails:
    async def test_short_query_skips_catalog(self, catalog, catalog_requests):
        assert await catalog.suggest("a") == []
        assert catalog_requests == []

    async def test_suggest_uses_small_covers(self, catalog, catalog_requests):
        suggestions = await catalog.suggest("orw", limit=3)
        assert catalog_requests[0].url.params["limit"] == "3"
        assert suggestions[0].coverUrl.endswith("-S.jpg")
        assert suggestions[0].isbn is None

    async def test_details_normalizes_id_and_unwraps_description(self, catalog, catalog_requests):
        detail = await catalog.get_details("/works/OL1W")
        assert catalog_requests[0].url.path == "/works/OL1W.json"
        assert detail.description == "A dystopian novel."
        assert detail.covers == [123]

    async def test_subject_tags_results(self, catalog, catalog_requests):
        books = await catalog.subject("mystery")
        params = catalog_requests[0].url.params
        assert params["subject"] == "mystery"
        assert params["sort"] == "rating"
        assert all(b.recommendedBy == "mystery" for b in books)
