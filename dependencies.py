from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from dataBase import get_db
from errors import UnauthenticatedError
from utils import verify_token, serialize

bearer_scheme = HTTPBearer(auto_error=False)

# Never handed to route handlers
PRIVATE_USER_FIELDS = ("password", "resetPasswordToken", "resetPasswordExpires")


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    user = serialize(user)
    for field in PRIVATE_USER_FIELDS:
        user.pop(field, None)
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db=Depends(get_db),
) -> Dict[str, Any]:
    """Resolve the bearer token to the calling user."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthenticatedError("Not authorized, no token")

    user_id = verify_token(credentials.credentials)
    if not user_id or not ObjectId.is_valid(user_id):
        raise UnauthenticatedError("Not authorized, token failed")

    user = await db.users.find_one({"_id": ObjectId(user_id)})
    if not user:
        raise UnauthenticatedError("User not found")
    return public_user(user)
