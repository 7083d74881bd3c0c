import logging
import re
import secrets
from datetime import datetime, timedelta

from bson import ObjectId
from fastapi import APIRouter, BackgroundTasks, Depends
from pymongo.errors import DuplicateKeyError

from config import RESET_TOKEN_EXPIRE_MINUTES
from dataBase import get_db
from dependencies import get_current_user, public_user
from email_service import send_password_reset_email
from errors import ConflictError, InvalidInputError, UnauthenticatedError
from models.login_model import LoginUser
from models.password_models import ForgotPasswordRequest, ResetPasswordRequest
from models.preference_models import DisplayPreferences, DEFAULT_DISPLAY_PREFERENCES
from models.register_model import RegisterUser
from models.update_profile_model import UpdateUserProfile
from utils import hash_password, verify_password, create_access_token, hash_reset_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

RESET_REQUESTED = "If an account exists for that email, a password reset link has been sent"


def _user_payload(user: dict, token: str = None) -> dict:
    data = {
        "id": str(user["_id"]),
        "username": user["username"],
        "email": user["email"],
    }
    if token:
        data["token"] = token
    return data


@router.post("/register", status_code=201)
async def register_user(user: RegisterUser, db=Depends(get_db)):
    username = user.username.strip()
    email = user.email.lower()
    if await db.users.find_one({"$or": [{"email": email}, {"username": username}]}):
        raise ConflictError("User already exists with this email or username")

    now = datetime.utcnow()
    user_dict = {
        "username": username,
        "email": email,
        "password": hash_password(user.password),
        "favoriteGenres": [],
        "preferences": dict(DEFAULT_DISPLAY_PREFERENCES),
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        result = await db.users.insert_one(user_dict)
    except DuplicateKeyError:
        raise ConflictError("User already exists with this email or username")
    user_dict["_id"] = result.inserted_id
    logger.info("Registered user %s", user_dict["_id"])
    return {"success": True, "data": _user_payload(user_dict, create_access_token(str(result.inserted_id)))}


@router.post("/login")
async def login_user(credentials: LoginUser, db=Depends(get_db)):
    identifier = credentials.login_name
    existing_user = await db.users.find_one({
        "$or": [
            {"email": identifier.lower()},
            {"username": {"$regex": f"^{re.escape(identifier)}$", "$options": "i"}},
        ]
    })
    if not existing_user or not verify_password(credentials.password, existing_user["password"]):
        raise UnauthenticatedError("Invalid credentials")

    return {
        "success": True,
        "data": _user_payload(existing_user, create_access_token(str(existing_user["_id"]))),
    }


@router.get("/me")
async def get_me(current_user: dict = Depends(get_current_user)):
    return {
        "success": True,
        "data": {
            "id": current_user["id"],
            "username": current_user["username"],
            "email": current_user["email"],
            "favoriteGenres": current_user.get("favoriteGenres", []),
            "preferences": current_user.get("preferences") or dict(DEFAULT_DISPLAY_PREFERENCES),
        },
    }


@router.put("/preferences")
async def update_preferences(
    preferences: DisplayPreferences,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    merged = {**DEFAULT_DISPLAY_PREFERENCES, **(current_user.get("preferences") or {})}
    for key, value in preferences.model_dump(exclude_none=True).items():
        merged[key] = value.value if hasattr(value, "value") else value

    await db.users.update_one(
        {"_id": ObjectId(current_user["id"])},
        {"$set": {"preferences": merged, "updatedAt": datetime.utcnow()}},
    )
    return {"success": True, "data": {"preferences": merged}}


@router.put("/profile")
async def update_profile(
    updated_data: UpdateUserProfile,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    update_dict = {}
    if updated_data.username is not None:
        update_dict["username"] = updated_data.username.strip()
    if updated_data.email is not None:
        update_dict["email"] = updated_data.email.lower()
    if not update_dict:
        raise InvalidInputError("No fields provided for update")

    user_id = ObjectId(current_user["id"])
    taken = await db.users.find_one({
        "_id": {"$ne": user_id},
        "$or": [{k: v} for k, v in update_dict.items()],
    })
    if taken:
        raise ConflictError("Username or email is already in use")

    update_dict["updatedAt"] = datetime.utcnow()
    try:
        await db.users.update_one({"_id": user_id}, {"$set": update_dict})
    except DuplicateKeyError:
        raise ConflictError("Username or email is already in use")

    updated_user = await db.users.find_one({"_id": user_id})
    return {"success": True, "data": public_user(updated_user)}


@router.post("/forgot-password")
async def forgot_password(
    request: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db=Depends(get_db),
):
    user = await db.users.find_one({"email": request.email.lower()})
    if user:
        reset_token = secrets.token_urlsafe(32)
        await db.users.update_one(
            {"_id": user["_id"]},
            {"$set": {
                "resetPasswordToken": hash_reset_token(reset_token),
                "resetPasswordExpires": datetime.utcnow() + timedelta(minutes=RESET_TOKEN_EXPIRE_MINUTES),
            }},
        )
        background_tasks.add_task(send_password_reset_email, user["email"], reset_token)
    # Same answer whether or not the account exists
    return {"success": True, "message": RESET_REQUESTED}


@router.post("/reset-password")
async def reset_password(request: ResetPasswordRequest, db=Depends(get_db)):
    user = await db.users.find_one({
        "resetPasswordToken": hash_reset_token(request.token),
        "resetPasswordExpires": {"$gt": datetime.utcnow()},
    })
    if not user:
        raise InvalidInputError("Password reset token is invalid or has expired")

    await db.users.update_one(
        {"_id": user["_id"]},
        {
            "$set": {"password": hash_password(request.password), "updatedAt": datetime.utcnow()},
            "$unset": {"resetPasswordToken": "", "resetPasswordExpires": ""},
        },
    )
    logger.info("Password reset for user %s", user["_id"])
    return {
        "success": True,
        "message": "Password has been reset",
        "data": _user_payload(user, create_access_token(str(user["_id"]))),
    }
