import asyncio
import logging
from typing import Any, Dict, Iterable, List

from catalog_service import OpenLibraryClient
from errors import AppError, UpstreamUnavailableError
from library_service import LibraryService
from models.book_models import BookSummary
from search_history_service import SearchHistoryService
from utils import normalize_work_id

logger = logging.getLogger(__name__)

MAX_GENRES = 3
FALLBACK_GENRES = ("fiction", "mystery", "science fiction")
RESULTS_PER_GENRE = 5
MAX_RECOMMENDATIONS = 12
SAVED_BOOKS_LOOKBACK = 20
SEARCH_HISTORY_LOOKBACK = 10


def collect_genres(
    favorite_genres: Iterable[str],
    saved_books: Iterable[Dict[str, Any]],
    searches: Iterable[Dict[str, Any]],
) -> List[str]:
    """Lower-cased genres from all three sources, first occurrence first."""
    genres = {}
    sources = [
        favorite_genres or [],
        (g for book in saved_books for g in book.get("genres") or []),
        (g for search in searches for g in search.get("inferredGenres") or []),
    ]
    for source in sources:
        for genre in source:
            if genre and genre.strip():
                genres.setdefault(genre.strip().lower(), None)
    return list(genres)


def select_genres(genres: List[str]) -> List[str]:
    return genres[:MAX_GENRES] if genres else list(FALLBACK_GENRES)


def merge_recommendations(
    per_genre: Iterable[List[BookSummary]], saved_ids: set, cap: int = MAX_RECOMMENDATIONS
) -> List[BookSummary]:
    """Concatenate genre results, keep the first copy of each work, drop books already saved."""
    seen = set()
    merged = []
    for books in per_genre:
        for book in books:
            key = normalize_work_id(book.id)
            if key in seen or key in saved_ids:
                continue
            seen.add(key)
            merged.append(book)
    return merged[:cap]


class RecommendationService:
    def __init__(self, db, catalog: OpenLibraryClient):
        self.db = db
        self.catalog = catalog
        self.library = LibraryService(db)
        self.history = SearchHistoryService(db)

    async def _fetch_all(self, genres: List[str]) -> List[List[BookSummary]]:
        results = await asyncio.gather(
            *(self.catalog.subject(genre, limit=RESULTS_PER_GENRE) for genre in genres),
            return_exceptions=True,
        )
        succeeded = []
        failures = []
        for genre, result in zip(genres, results):
            if isinstance(result, Exception):
                logger.warning("Error fetching recommendations for genre %s: %s", genre, result)
                failures.append(result)
            else:
                succeeded.append(result)

        if not succeeded and failures:
            first = failures[0]
            if isinstance(first, AppError):
                raise first
            raise UpstreamUnavailableError("Could not load recommendations. Please try again later.")
        return succeeded

    async def recommend(self, user: Dict[str, Any]) -> Dict[str, Any]:
        user_id = user["id"]
        saved_books = await self.library.list_saved(user_id, limit=SAVED_BOOKS_LOOKBACK)
        searches = await self.history.recent(user_id, limit=SEARCH_HISTORY_LOOKBACK)

        genres = collect_genres(user.get("favoriteGenres"), saved_books, searches)
        selected = select_genres(genres)

        per_genre = await self._fetch_all(selected)
        saved_ids = await self.library.saved_ids(user_id)
        books = merge_recommendations(per_genre, saved_ids)

        return {
            "success": True,
            "count": len(books),
            "basedOn": {
                "favoriteGenres": genres,
                "genresUsed": selected,
                "savedBooksCount": len(saved_books),
                "recentSearchesCount": len(searches),
            },
            "data": [b.model_dump() for b in books],
        }
