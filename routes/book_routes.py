import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from catalog_service import OpenLibraryClient, get_catalog, search_books
from dataBase import get_db
from dependencies import get_current_user
from errors import AppError
from library_service import LibraryService
from models.book_models import ProgressUpdate, SaveBookRequest
from models.search_history_models import ClickedBook
from search_history_service import SearchHistoryService, infer_genres

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["books"])


@router.get("/suggestions")
async def get_suggestions(
    q: Optional[str] = None,
    limit: int = Query(5, ge=1, le=20),
    current_user: dict = Depends(get_current_user),
    catalog: OpenLibraryClient = Depends(get_catalog),
):
    try:
        suggestions = await catalog.suggest(q or "", limit=limit)
    except AppError as e:
        # Autocomplete degrades to nothing rather than breaking the search box
        logger.warning("Suggestions unavailable: %s", e.message)
        suggestions = []
    return {"success": True, "data": [s.model_dump(exclude_none=True) for s in suggestions]}


@router.get("/search")
async def search(
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    genre: Optional[str] = None,
    yearFrom: Optional[int] = None,
    yearTo: Optional[int] = None,
    current_user: dict = Depends(get_current_user),
    catalog: OpenLibraryClient = Depends(get_catalog),
    db=Depends(get_db),
):
    result = await search_books(catalog, q, page=page, limit=limit, genre=genre, year_from=yearFrom, year_to=yearTo)

    query_text = (q or "").strip() or (f"subject:{genre.strip()}" if genre and genre.strip() else "")
    if query_text:
        try:
            await SearchHistoryService(db).add_search(
                current_user["id"],
                query_text,
                results_count=result["total"],
                inferred_genres=infer_genres(q, genre),
            )
        except Exception as e:
            logger.warning("Could not record search history: %s", e)
    return result


@router.get("/history")
async def get_search_history(
    limit: int = Query(10, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    entries = await SearchHistoryService(db).recent(current_user["id"], limit=limit)
    return {"success": True, "count": len(entries), "data": entries}


@router.post("/history/{history_id}/click")
async def record_search_click(
    history_id: str,
    book: ClickedBook,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    entry = await SearchHistoryService(db).record_click(current_user["id"], history_id, book)
    return {"success": True, "data": entry}


@router.get("/details/{book_id:path}")
async def get_book_details(
    book_id: str,
    current_user: dict = Depends(get_current_user),
    catalog: OpenLibraryClient = Depends(get_catalog),
):
    details = await catalog.get_details(book_id)
    return {"success": True, "data": details.model_dump()}


@router.get("/saved")
async def get_saved_books(current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    books = await LibraryService(db).list_saved(current_user["id"])
    return {"success": True, "count": len(books), "data": books}


@router.post("/saved", status_code=201)
async def save_book(
    book: SaveBookRequest,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    saved = await LibraryService(db).save(current_user["id"], book)
    return {"success": True, "data": saved}


@router.get("/saved/status/{external_id:path}")
async def get_saved_status(
    external_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    book = await LibraryService(db).find_saved(current_user["id"], external_id)
    return {"success": True, "data": {"saved": book is not None, "bookId": book["id"] if book else None}}


@router.delete("/saved/openlibrary/{external_id:path}")
async def remove_saved_book_by_external_id(
    external_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    await LibraryService(db).remove_by_external_id(current_user["id"], external_id)
    return {"success": True, "message": "Book removed from reading list"}


@router.delete("/saved/{book_id}")
async def remove_saved_book(
    book_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    await LibraryService(db).remove(current_user["id"], book_id)
    return {"success": True, "message": "Book removed from reading list"}


@router.put("/{book_id}/progress")
async def update_progress(
    book_id: str,
    update: ProgressUpdate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    book = await LibraryService(db).update_progress(current_user["id"], book_id, update)
    return {"success": True, "data": book}


@router.get("/progress/stats")
async def get_progress_stats(current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    stats = await LibraryService(db).stats(current_user["id"])
    return {"success": True, "data": stats}
