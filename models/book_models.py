from pydantic import BaseModel, Field
from typing import List, Optional
from enum import Enum


class ReadingStatus(str, Enum):
    NOT_STARTED = "not-started"
    READING = "reading"
    PAUSED = "paused"
    COMPLETED = "completed"


class BookSummary(BaseModel):
    id: str
    title: str
    author: str = "Unknown Author"
    publishYear: Optional[int] = None
    coverUrl: Optional[str] = None
    isbn: Optional[str] = None
    genres: List[str] = []
    description: Optional[str] = None
    # Only set on recommendation results
    rating: Optional[float] = None
    recommendedBy: Optional[str] = None


class CatalogPage(BaseModel):
    items: List[BookSummary] = []
    totalFound: int = 0


class WorkDetail(BaseModel):
    id: str
    title: str
    description: str
    subjects: List[str] = []
    covers: List[int] = []


class SaveBookRequest(BaseModel):
    openLibraryId: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    author: Optional[str] = None
    coverUrl: Optional[str] = None
    publishYear: Optional[int] = None
    description: Optional[str] = None
    isbn: Optional[str] = None
    genres: List[str] = []


class ProgressUpdate(BaseModel):
    status: Optional[ReadingStatus] = None
    currentPage: Optional[int] = Field(None, ge=0)
    totalPages: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None
