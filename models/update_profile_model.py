from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class UpdateUserProfile(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=30)
    email: Optional[EmailStr] = None
