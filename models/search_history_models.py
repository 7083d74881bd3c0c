from pydantic import BaseModel, Field
from typing import List


class ClickedBook(BaseModel):
    openLibraryId: str = Field(..., min_length=1)
    title: str = ""
    genres: List[str] = []
