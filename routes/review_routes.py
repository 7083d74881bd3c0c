from fastapi import APIRouter, Depends

from dataBase import get_db
from dependencies import get_current_user
from models.review_models import ReviewCreate, ReviewUpdate
from review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("/book/{external_id:path}")
async def get_book_reviews(external_id: str, db=Depends(get_db)):
    """Public: anyone can read a book's reviews."""
    result = await ReviewService(db).list_for_book(external_id)
    return {"success": True, **result}


@router.get("/user")
async def get_user_reviews(current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    reviews = await ReviewService(db).list_for_user(current_user["id"])
    return {"success": True, "count": len(reviews), "data": reviews}


@router.post("", status_code=201)
async def create_review(
    review: ReviewCreate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    created = await ReviewService(db).create(current_user, review)
    return {"success": True, "data": created}


@router.put("/{review_id}")
async def update_review(
    review_id: str,
    review: ReviewUpdate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    updated = await ReviewService(db).update(current_user, review_id, review)
    return {"success": True, "data": updated}


@router.delete("/{review_id}")
async def delete_review(
    review_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    await ReviewService(db).delete(current_user, review_id)
    return {"success": True, "message": "Review deleted"}


@router.post("/{review_id}/helpful")
async def mark_review_helpful(
    review_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    review = await ReviewService(db).mark_helpful(current_user, review_id)
    return {"success": True, "data": review}
