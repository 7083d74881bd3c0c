from pydantic import BaseModel
from typing import List, Optional
from enum import Enum


class FontSizeEnum(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class DisplayPreferences(BaseModel):
    darkMode: Optional[bool] = None
    fontSize: Optional[FontSizeEnum] = None
    reducedMotion: Optional[bool] = None
    highContrast: Optional[bool] = None


class FavoriteGenresUpdate(BaseModel):
    favoriteGenres: List[str]


DEFAULT_DISPLAY_PREFERENCES = {
    "darkMode": False,
    "fontSize": FontSizeEnum.MEDIUM.value,
    "reducedMotion": False,
    "highContrast": False,
}
