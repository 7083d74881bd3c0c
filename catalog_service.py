import logging
from typing import Any, Dict, List, Optional

import httpx

from config import OPEN_LIBRARY_API, OPEN_LIBRARY_COVERS, CATALOG_TIMEOUT, SUGGEST_TIMEOUT
from errors import (
    InvalidInputError,
    UpstreamRejectedError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from models.book_models import BookSummary, CatalogPage, WorkDetail
from utils import normalize_work_id

logger = logging.getLogger(__name__)

SEARCH_FIELDS = "key,title,author_name,first_publish_year,isbn,cover_i,subject"
SUGGEST_FIELDS = "key,title,author_name,first_publish_year,cover_i"
SUBJECT_FIELDS = SEARCH_FIELDS + ",ratings_average"

MAX_GENRES = 5
DESCRIPTION_GENRES = 3
NO_DESCRIPTION = "No description available"
# Broad term used when a search only carries year bounds
YEAR_ONLY_FALLBACK_QUERY = "fiction"


class OpenLibraryClient:
    """Read-only client for the Open Library search and works APIs."""

    def __init__(
        self,
        base_url: str = OPEN_LIBRARY_API,
        covers_url: str = OPEN_LIBRARY_COVERS,
        timeout: float = CATALOG_TIMEOUT,
        short_timeout: float = SUGGEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.covers_url = covers_url.rstrip("/")
        self.timeout = timeout
        self.short_timeout = short_timeout
        self._transport = transport

    async def _get(self, path: str, params: Optional[Dict[str, Any]], timeout: float) -> Dict[str, Any]:
        filtered = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            async with httpx.AsyncClient(base_url=self.base_url, transport=self._transport) as client:
                resp = await client.get(path, params=filtered, timeout=timeout)
                resp.raise_for_status()
                return resp.json()
        except httpx.TimeoutException as e:
            logger.warning("Open Library timed out on %s: %s", path, e)
            raise UpstreamTimeoutError(
                "Open Library is taking too long to respond. Please try a more specific search or try again later."
            )
        except httpx.HTTPStatusError as e:
            logger.warning("Open Library returned %s for %s", e.response.status_code, path)
            raise UpstreamRejectedError("Open Library API error. Please try again.")
        except httpx.RequestError as e:
            logger.warning("Cannot reach Open Library for %s: %s", path, e)
            raise UpstreamUnavailableError(
                "Cannot reach Open Library API. Please check your internet connection."
            )
        except ValueError as e:
            logger.warning("Open Library sent an unreadable body for %s: %s", path, e)
            raise UpstreamRejectedError("Open Library API error. Please try again.")

    def cover_url(self, cover_id: Optional[int], size: str = "M") -> Optional[str]:
        if not cover_id:
            return None
        return f"{self.covers_url}/b/id/{cover_id}-{size}.jpg"

    def to_summary(self, doc: Dict[str, Any], genre_limit: int = MAX_GENRES) -> BookSummary:
        """Normalize one search document into a BookSummary."""
        subjects = doc.get("subject") or []
        authors = doc.get("author_name") or []
        isbns = doc.get("isbn") or []
        return BookSummary(
            id=doc.get("key", ""),
            title=doc.get("title") or "Unknown Title",
            author=authors[0] if authors else "Unknown Author",
            publishYear=doc.get("first_publish_year"),
            coverUrl=self.cover_url(doc.get("cover_i")),
            isbn=isbns[0] if isbns else None,
            genres=subjects[:genre_limit],
            description=", ".join(subjects[:DESCRIPTION_GENRES]) if subjects else NO_DESCRIPTION,
        )

    async def search(self, query: str, page: int = 1, limit: int = 12, genre: Optional[str] = None) -> CatalogPage:
        # The catalog has no structured genre parameter on full-text search,
        # so the genre travels as a subject: token inside the query.
        terms = [query.strip()] if query and query.strip() else []
        if genre:
            terms.append(f"subject:{genre}")
        data = await self._get(
            "/search.json",
            {"q": " ".join(terms), "page": page, "limit": limit, "fields": SEARCH_FIELDS},
            self.timeout,
        )
        return CatalogPage(
            items=[self.to_summary(d) for d in data.get("docs", [])],
            totalFound=data.get("numFound", 0),
        )

    async def suggest(self, partial_query: str, limit: int = 5) -> List[BookSummary]:
        text = (partial_query or "").strip()
        if len(text) < 2:
            return []
        data = await self._get(
            "/search.json",
            {"q": text, "limit": limit, "fields": SUGGEST_FIELDS},
            self.short_timeout,
        )
        suggestions = []
        for doc in data.get("docs", []):
            authors = doc.get("author_name") or []
            suggestions.append(BookSummary(
                id=doc.get("key", ""),
                title=doc.get("title") or "Unknown Title",
                author=authors[0] if authors else "Unknown Author",
                publishYear=doc.get("first_publish_year"),
                coverUrl=self.cover_url(doc.get("cover_i"), size="S"),
            ))
        return suggestions

    async def get_details(self, external_id: str) -> WorkDetail:
        work_id = normalize_work_id(external_id)
        if not work_id:
            raise InvalidInputError("Book ID is required")
        book = await self._get(f"/works/{work_id}.json", None, self.timeout)
        description = book.get("description")
        if isinstance(description, dict):
            description = description.get("value")
        return WorkDetail(
            id=book.get("key", f"/works/{work_id}"),
            title=book.get("title") or "Unknown Title",
            description=description or NO_DESCRIPTION,
            subjects=book.get("subjects") or [],
            covers=[c for c in book.get("covers") or [] if isinstance(c, int)],
        )

    async def subject(self, genre: str, limit: int = 5) -> List[BookSummary]:
        """Top rated works for one subject, tagged with the genre that produced them."""
        data = await self._get(
            "/search.json",
            {"subject": genre, "limit": limit, "sort": "rating", "fields": SUBJECT_FIELDS},
            self.short_timeout,
        )
        books = []
        for doc in data.get("docs", []):
            book = self.to_summary(doc, genre_limit=DESCRIPTION_GENRES)
            if not book.genres:
                book.genres = [genre]
            book.rating = doc.get("ratings_average")
            book.recommendedBy = genre
            books.append(book)
        return books

    async def trending(self, limit: int = 12) -> List[BookSummary]:
        data = await self._get(
            "/search.json",
            {"q": "*", "sort": "new", "limit": limit, "fields": SEARCH_FIELDS},
            self.short_timeout,
        )
        return [self.to_summary(d, genre_limit=DESCRIPTION_GENRES) for d in data.get("docs", [])]


def filter_by_year(books: List[BookSummary], year_from: Optional[int], year_to: Optional[int]) -> List[BookSummary]:
    """Post-filter a result page by publish year; unknown years drop out when a bound is set."""
    if year_from is None and year_to is None:
        return books
    kept = []
    for book in books:
        if book.publishYear is None:
            continue
        if year_from is not None and book.publishYear < year_from:
            continue
        if year_to is not None and book.publishYear > year_to:
            continue
        kept.append(book)
    return kept


async def search_books(
    catalog: OpenLibraryClient,
    q: Optional[str],
    page: int = 1,
    limit: int = 12,
    genre: Optional[str] = None,
    year_from: Optional[int] = None,
    year_to: Optional[int] = None,
) -> Dict[str, Any]:
    query = (q or "").strip()
    genre = (genre or "").strip() or None
    if not query and not genre and year_from is None and year_to is None:
        raise InvalidInputError("Search query or at least one filter (genre or year) is required")

    if not query and not genre:
        query = YEAR_ONLY_FALLBACK_QUERY

    result = await catalog.search(query, page=page, limit=limit, genre=genre)
    books = filter_by_year(result.items, year_from, year_to)
    return {
        "success": True,
        "count": len(books),
        "total": result.totalFound,
        "page": page,
        "filters": {"genre": genre, "yearFrom": year_from, "yearTo": year_to},
        "data": [b.model_dump() for b in books],
    }


catalog_client = OpenLibraryClient()


def get_catalog() -> OpenLibraryClient:
    """FastAPI dependency returning the shared catalog client."""
    return catalog_client
