from passlib.context import CryptContext
import jwt
import hashlib
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from bson import ObjectId
from bson.errors import InvalidId

from config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_DAYS
from errors import InvalidInputError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Path segments the catalog puts in front of its keys ("/works/OL45883W")
CATALOG_KEY_PREFIXES = ("works/", "books/")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token carrying only the user's id"""
    now = datetime.utcnow()
    expire = now + (expires_delta or timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode = {"id": user_id, "exp": expire, "iat": now}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and verify JWT access token"""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        return None


def verify_token(token: str) -> Optional[str]:
    """Verify token and return user id if valid"""
    payload = decode_access_token(token)
    if payload is None:
        return None
    user_id = payload.get("id")
    return user_id if isinstance(user_id, str) else None


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def normalize_work_id(external_id: str) -> str:
    """Canonical form of a catalog identifier.

    "/works/OL123W", "works/OL123W" and "OL123W" all normalize to "OL123W".
    """
    normalized = (external_id or "").strip()
    while True:
        stripped = normalized.lstrip("/")
        for prefix in CATALOG_KEY_PREFIXES:
            if stripped.startswith(prefix):
                stripped = stripped[len(prefix):]
                break
        if stripped == normalized:
            return normalized
        normalized = stripped


def oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise InvalidInputError("Invalid ID format")


def serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Make a Mongo document JSON friendly: _id becomes id, ObjectIds become strings."""
    if not doc:
        return doc
    out = {**doc}
    if "_id" in out:
        out["id"] = str(out.pop("_id"))
    for k, v in list(out.items()):
        if isinstance(v, ObjectId):
            out[k] = str(v)
        elif isinstance(v, list):
            out[k] = [str(i) if isinstance(i, ObjectId) else i for i in v]
    return out
