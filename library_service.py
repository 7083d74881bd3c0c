import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo.errors import DuplicateKeyError

from errors import ConflictError, ForbiddenError, NotFoundError
from models.book_models import ProgressUpdate, ReadingStatus, SaveBookRequest
from utils import normalize_work_id, oid, serialize

logger = logging.getLogger(__name__)

ALREADY_SAVED = "Book already in your reading list"


def default_progress() -> Dict[str, Any]:
    return {
        "status": ReadingStatus.NOT_STARTED.value,
        "currentPage": 0,
        "totalPages": 0,
        "percentage": 0,
        "notes": "",
        "startedAt": None,
        "completedAt": None,
    }


def progress_percentage(current_page: int, total_pages: int) -> int:
    """round(current / total * 100), halves rounding up, capped at 100."""
    if not total_pages or total_pages <= 0:
        return 0
    return min(int(math.floor(current_page / total_pages * 100 + 0.5)), 100)


def apply_progress(progress: Dict[str, Any], update: ProgressUpdate, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Return a new progress record with the supplied fields applied."""
    now = now or datetime.utcnow()
    result = {**default_progress(), **(progress or {})}
    fields = update.model_dump(exclude_unset=True)

    if update.status is not None:
        result["status"] = update.status.value
    if fields.get("currentPage") is not None:
        result["currentPage"] = update.currentPage
    if fields.get("totalPages") is not None:
        result["totalPages"] = update.totalPages
    if "notes" in fields and update.notes is not None:
        result["notes"] = update.notes

    pages_touched = fields.get("currentPage") is not None or fields.get("totalPages") is not None
    if pages_touched and result["totalPages"] > 0:
        result["percentage"] = progress_percentage(result["currentPage"], result["totalPages"])

    if update.status == ReadingStatus.READING and not result.get("startedAt"):
        result["startedAt"] = now
    if update.status == ReadingStatus.COMPLETED:
        result["completedAt"] = now
        result["percentage"] = 100
    return result


class LibraryService:
    """Per-user reading list kept in the saved_books collection."""

    def __init__(self, db):
        self.db = db

    async def list_saved(self, user_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        cursor = self.db.saved_books.find({"user": user_id}).sort("addedAt", -1)
        if limit:
            cursor = cursor.limit(limit)
        return [serialize(book) async for book in cursor]

    async def saved_ids(self, user_id: str) -> set:
        cursor = self.db.saved_books.find({"user": user_id}, {"openLibraryId": 1})
        return {book["openLibraryId"] async for book in cursor}

    async def find_saved(self, user_id: str, external_id: str) -> Optional[Dict[str, Any]]:
        book = await self.db.saved_books.find_one(
            {"user": user_id, "openLibraryId": normalize_work_id(external_id)}
        )
        return serialize(book) if book else None

    async def save(self, user_id: str, book_data: SaveBookRequest) -> Dict[str, Any]:
        external_id = normalize_work_id(book_data.openLibraryId)
        if await self.db.saved_books.find_one({"user": user_id, "openLibraryId": external_id}):
            raise ConflictError(ALREADY_SAVED)

        now = datetime.utcnow()
        book = {
            "user": user_id,
            "openLibraryId": external_id,
            "title": book_data.title.strip(),
            "author": (book_data.author or "").strip() or "Unknown Author",
            "coverUrl": book_data.coverUrl,
            "publishYear": book_data.publishYear,
            "description": book_data.description or "No description available",
            "isbn": book_data.isbn,
            "genres": [g.strip() for g in book_data.genres if g and g.strip()],
            "readingProgress": default_progress(),
            "userRating": None,
            "addedAt": now,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            result = await self.db.saved_books.insert_one(book)
        except DuplicateKeyError:
            # Lost a race with a concurrent save of the same book
            raise ConflictError(ALREADY_SAVED)
        book["_id"] = result.inserted_id
        logger.info("User %s saved %s", user_id, external_id)
        return serialize(book)

    async def remove(self, user_id: str, book_id: str) -> None:
        # Filtering on the owner means another user's record looks exactly like a missing one
        result = await self.db.saved_books.delete_one({"_id": oid(book_id), "user": user_id})
        if result.deleted_count == 0:
            raise NotFoundError("Book not found in your reading list")

    async def remove_by_external_id(self, user_id: str, external_id: str) -> None:
        result = await self.db.saved_books.delete_one(
            {"user": user_id, "openLibraryId": normalize_work_id(external_id)}
        )
        if result.deleted_count == 0:
            raise NotFoundError("Book not found in your reading list")

    async def get_owned(self, user_id: str, book_id: str) -> Dict[str, Any]:
        book = await self.db.saved_books.find_one({"_id": oid(book_id)})
        if not book:
            raise NotFoundError("Book not found")
        if book["user"] != user_id:
            raise ForbiddenError("Not authorized to update this book")
        return book

    async def update_progress(self, user_id: str, book_id: str, update: ProgressUpdate) -> Dict[str, Any]:
        book = await self.get_owned(user_id, book_id)
        progress = apply_progress(book.get("readingProgress"), update)
        now = datetime.utcnow()
        await self.db.saved_books.update_one(
            {"_id": book["_id"]},
            {"$set": {"readingProgress": progress, "updatedAt": now}},
        )
        book["readingProgress"] = progress
        book["updatedAt"] = now
        return serialize(book)

    async def set_rating(self, book_id, user_id: str, rating: Optional[int]) -> bool:
        """Copy a review rating onto the saved book if the user still owns it."""
        result = await self.db.saved_books.update_one(
            {"_id": book_id, "user": user_id},
            {"$set": {"userRating": rating, "updatedAt": datetime.utcnow()}},
        )
        return result.matched_count > 0

    async def stats(self, user_id: str) -> Dict[str, Any]:
        counts = {status.value: 0 for status in ReadingStatus}
        ratings = []
        total = 0
        async for book in self.db.saved_books.find({"user": user_id}):
            total += 1
            status = (book.get("readingProgress") or {}).get("status", ReadingStatus.NOT_STARTED.value)
            counts[status] = counts.get(status, 0) + 1
            if book.get("userRating") is not None:
                ratings.append(book["userRating"])

        return {
            "total": total,
            "notStarted": counts[ReadingStatus.NOT_STARTED.value],
            "reading": counts[ReadingStatus.READING.value],
            "completed": counts[ReadingStatus.COMPLETED.value],
            "paused": counts[ReadingStatus.PAUSED.value],
            "averageRating": round(sum(ratings) / len(ratings), 1) if ratings else 0,
        }
