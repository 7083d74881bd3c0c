import logging
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from errors import NotFoundError
from models.search_history_models import ClickedBook
from utils import oid, serialize

logger = logging.getLogger(__name__)

MAX_ENTRIES_PER_USER = 100

# Genres recognised inside free-text queries
KNOWN_GENRES = (
    "fantasy",
    "science fiction",
    "mystery",
    "thriller",
    "romance",
    "horror",
    "biography",
    "history",
    "philosophy",
    "adventure",
    "poetry",
    "classics",
    "young adult",
    "children",
    "humor",
    "self-help",
    "business",
    "science",
    "psychology",
    "travel",
)


def infer_genres(query: Optional[str], genre_filter: Optional[str] = None) -> List[str]:
    """Genres suggested by a search: its explicit filter plus known genres named in the text."""
    genres = []
    if genre_filter and genre_filter.strip():
        genres.append(genre_filter.strip().lower())
    text = (query or "").lower()
    for genre in KNOWN_GENRES:
        if genre not in genres and re.search(r"\b%s\b" % re.escape(genre), text):
            genres.append(genre)
    return genres


class SearchHistoryService:
    def __init__(self, db):
        self.db = db

    async def add_search(
        self,
        user_id: str,
        query: str,
        results_count: int = 0,
        inferred_genres: Iterable[str] = (),
        searched_at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        entry = {
            "user": user_id,
            "query": query.strip(),
            "resultsCount": results_count,
            "inferredGenres": [g.strip() for g in inferred_genres if g and g.strip()],
            "clickedBooks": [],
            "searchedAt": searched_at or datetime.utcnow(),
        }
        result = await self.db.search_history.insert_one(entry)
        entry["_id"] = result.inserted_id
        await self._trim(user_id)
        return serialize(entry)

    async def _trim(self, user_id: str) -> int:
        """Evict the oldest entries beyond the per-user cap in one batch."""
        count = await self.db.search_history.count_documents({"user": user_id})
        if count <= MAX_ENTRIES_PER_USER:
            return 0
        cursor = (
            self.db.search_history.find({"user": user_id}, {"_id": 1})
            .sort("searchedAt", 1)
            .limit(count - MAX_ENTRIES_PER_USER)
        )
        stale_ids = [entry["_id"] async for entry in cursor]
        result = await self.db.search_history.delete_many({"_id": {"$in": stale_ids}})
        logger.debug("Trimmed %d search history entries for user %s", result.deleted_count, user_id)
        return result.deleted_count

    async def recent(self, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        cursor = self.db.search_history.find({"user": user_id}).sort("searchedAt", -1).limit(limit)
        return [serialize(entry) async for entry in cursor]

    async def record_click(self, user_id: str, history_id: str, book: ClickedBook) -> Dict[str, Any]:
        breadcrumb = {**book.model_dump(), "clickedAt": datetime.utcnow()}
        result = await self.db.search_history.update_one(
            {"_id": oid(history_id), "user": user_id},
            {"$push": {"clickedBooks": breadcrumb}},
        )
        if result.matched_count == 0:
            raise NotFoundError("Search history entry not found")
        entry = await self.db.search_history.find_one({"_id": oid(history_id)})
        return serialize(entry)
