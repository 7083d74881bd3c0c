from pydantic import BaseModel, Field, model_validator
from typing import Optional


class LoginUser(BaseModel):
    # Either an email address or a username
    identifier: Optional[str] = None
    email: Optional[str] = None
    password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def require_identifier(self):
        if not (self.identifier or self.email):
            raise ValueError("identifier or email is required")
        return self

    @property
    def login_name(self) -> str:
        return (self.identifier or self.email).strip()
