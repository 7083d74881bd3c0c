import logging
from datetime import datetime
from typing import Any, Dict, List

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from errors import ConflictError, ForbiddenError, NotFoundError
from library_service import LibraryService
from models.review_models import ReviewCreate, ReviewUpdate
from utils import normalize_work_id, oid, serialize

logger = logging.getLogger(__name__)

ALREADY_REVIEWED = "You have already reviewed this book"


def average_rating(reviews: List[Dict[str, Any]]) -> float:
    if not reviews:
        return 0
    return round(sum(r["rating"] for r in reviews) / len(reviews), 1)


class ReviewService:
    """Reviews of saved books, one per (user, book)."""

    def __init__(self, db):
        self.db = db
        self.library = LibraryService(db)

    async def _attach_usernames(self, reviews: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        user_ids = {r["user"] for r in reviews}
        object_ids = [ObjectId(u) for u in user_ids if ObjectId.is_valid(u)]
        names = {}
        async for user in self.db.users.find({"_id": {"$in": object_ids}}, {"username": 1}):
            names[str(user["_id"])] = user.get("username")
        for review in reviews:
            review["username"] = names.get(review["user"])
        return reviews

    async def list_for_book(self, external_id: str) -> Dict[str, Any]:
        cursor = self.db.reviews.find(
            {"openLibraryId": normalize_work_id(external_id)}
        ).sort("createdAt", -1)
        reviews = [serialize(r) async for r in cursor]
        await self._attach_usernames(reviews)
        return {"count": len(reviews), "averageRating": average_rating(reviews), "data": reviews}

    async def average_for_book(self, external_id: str) -> float:
        cursor = self.db.reviews.find({"openLibraryId": normalize_work_id(external_id)}, {"rating": 1})
        return average_rating([r async for r in cursor])

    async def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        reviews = [serialize(r) async for r in self.db.reviews.find({"user": user_id}).sort("createdAt", -1)]
        book_ids = [ObjectId(r["book"]) for r in reviews]
        books = {}
        projection = {"title": 1, "author": 1, "coverUrl": 1}
        async for book in self.db.saved_books.find({"_id": {"$in": book_ids}}, projection):
            books[str(book["_id"])] = serialize(book)
        for review in reviews:
            review["bookInfo"] = books.get(review["book"])
        return reviews

    async def _get(self, review_id: str) -> Dict[str, Any]:
        review = await self.db.reviews.find_one({"_id": oid(review_id)})
        if not review:
            raise NotFoundError("Review not found")
        return review

    async def create(self, user: Dict[str, Any], payload: ReviewCreate) -> Dict[str, Any]:
        user_id = user["id"]
        book = await self.db.saved_books.find_one({"_id": oid(payload.bookId), "user": user_id})
        if not book:
            raise NotFoundError("Book not found")

        if await self.db.reviews.find_one({"user": user_id, "book": book["_id"]}):
            raise ConflictError(ALREADY_REVIEWED)

        now = datetime.utcnow()
        review = {
            "user": user_id,
            "book": book["_id"],
            "openLibraryId": book["openLibraryId"],
            "rating": payload.rating,
            "title": payload.title.strip(),
            "comment": payload.comment.strip(),
            "readingStatus": payload.readingStatus.value,
            "helpfulVotes": 0,
            "votedBy": [],
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            result = await self.db.reviews.insert_one(review)
        except DuplicateKeyError:
            raise ConflictError(ALREADY_REVIEWED)
        review["_id"] = result.inserted_id

        # Denormalized copy for the reading list; only synced here and on delete
        await self.library.set_rating(book["_id"], user_id, payload.rating)

        created = serialize(review)
        created["username"] = user.get("username")
        return created

    async def update(self, user: Dict[str, Any], review_id: str, payload: ReviewUpdate) -> Dict[str, Any]:
        review = await self._get(review_id)
        if review["user"] != user["id"]:
            raise ForbiddenError("Not authorized to update this review")

        changes = {
            k: (v.value if hasattr(v, "value") else v)
            for k, v in payload.model_dump(exclude_none=True).items()
        }
        for field in ("title", "comment"):
            if field in changes:
                changes[field] = changes[field].strip()
        changes["updatedAt"] = datetime.utcnow()

        updated = await self.db.reviews.find_one_and_update(
            {"_id": review["_id"]},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        result = serialize(updated)
        result["username"] = user.get("username")
        return result

    async def delete(self, user: Dict[str, Any], review_id: str) -> None:
        review = await self._get(review_id)
        if review["user"] != user["id"]:
            raise ForbiddenError("Not authorized to delete this review")

        await self.db.reviews.delete_one({"_id": review["_id"]})
        if not await self.library.set_rating(review["book"], user["id"], None):
            logger.debug("Review %s deleted; its book is gone or owned by someone else", review_id)

    async def mark_helpful(self, user: Dict[str, Any], review_id: str) -> Dict[str, Any]:
        voter = user["id"]
        updated = await self.db.reviews.find_one_and_update(
            {"_id": oid(review_id), "votedBy": {"$ne": voter}},
            {"$inc": {"helpfulVotes": 1}, "$push": {"votedBy": voter}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            await self._get(review_id)
            raise ConflictError("You have already voted for this review")
        return serialize(updated)
