from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


class ReviewReadingStatus(str, Enum):
    READING = "reading"
    COMPLETED = "completed"


class ReviewCreate(BaseModel):
    bookId: str
    # Ignored: reviews are keyed by the saved book's own catalog id
    openLibraryId: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    title: str = Field(..., min_length=1, max_length=100)
    comment: str = Field(..., min_length=1, max_length=1000)
    readingStatus: ReviewReadingStatus = ReviewReadingStatus.COMPLETED


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    comment: Optional[str] = Field(None, min_length=1, max_length=1000)
    readingStatus: Optional[ReviewReadingStatus] = None
