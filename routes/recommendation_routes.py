from bson import ObjectId
from datetime import datetime
from fastapi import APIRouter, Depends, Query

from catalog_service import OpenLibraryClient, get_catalog
from dataBase import get_db
from dependencies import get_current_user
from models.preference_models import FavoriteGenresUpdate
from recommendation_service import RecommendationService

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


@router.get("")
async def get_recommendations(
    current_user: dict = Depends(get_current_user),
    catalog: OpenLibraryClient = Depends(get_catalog),
    db=Depends(get_db),
):
    return await RecommendationService(db, catalog).recommend(current_user)


@router.get("/trending")
async def get_trending_books(
    limit: int = Query(12, ge=1, le=50),
    current_user: dict = Depends(get_current_user),
    catalog: OpenLibraryClient = Depends(get_catalog),
):
    books = await catalog.trending(limit=limit)
    return {"success": True, "count": len(books), "data": [b.model_dump() for b in books]}


@router.put("/preferences")
async def set_favorite_genres(
    preferences: FavoriteGenresUpdate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    genres = [g.strip() for g in preferences.favoriteGenres if g and g.strip()]
    await db.users.update_one(
        {"_id": ObjectId(current_user["id"])},
        {"$set": {"favoriteGenres": genres, "updatedAt": datetime.utcnow()}},
    )
    return {"success": True, "data": {"favoriteGenres": genres}}
