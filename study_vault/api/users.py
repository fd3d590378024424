"""
Profile APIs: view a profile, edit your own, upload an avatar, update
reading statistics.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, UploadFile

from study_vault.api.auth import get_current_user
from study_vault.errors import ValidationError
from study_vault.models.user import User
from study_vault.schemas import ProfileUpdate, ReadingStatsUpdate
from study_vault.services import profile_service
from study_vault.services.library_service import UploadedFile, parse_object_id

logger = logging.getLogger(__name__)
router = APIRouter()


@router.put("/profile", response_model=dict, summary="Update my profile")
async def update_profile(
    body: ProfileUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    user = await profile_service.update_profile(current_user, body)
    return {
        "success": True,
        "message": "Profile updated successfully",
        "user": user.to_public(),
    }


@router.post("/avatar", response_model=dict, summary="Upload my avatar")
async def upload_avatar(
    current_user: Annotated[User, Depends(get_current_user)],
    avatar: Annotated[Optional[UploadFile], File()] = None,
) -> dict:
    """Multipart field "avatar"; jpeg, png, gif or webp."""
    if avatar is None or not avatar.filename:
        raise ValidationError("No file uploaded")
    upload = UploadedFile(
        filename=avatar.filename,
        content_type=avatar.content_type,
        content=await avatar.read(),
    )
    user = await profile_service.update_avatar(current_user, upload)
    return {
        "success": True,
        "message": "Avatar uploaded successfully",
        "avatarUrl": user.avatar,
    }


@router.put("/reading-stats", response_model=dict, summary="Update my reading statistics")
async def update_reading_stats(
    body: ReadingStatsUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    user = await profile_service.update_reading_stats(current_user, body)
    return {
        "success": True,
        "message": "Reading statistics updated successfully",
        "readingStats": user.to_public()["readingStats"],
    }


@router.get("/{user_id}", response_model=dict, summary="Get a user profile")
async def get_user_profile(
    user_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    profile = await profile_service.get_profile(parse_object_id(user_id, "User"), current_user)
    return {"success": True, "user": profile}
