"""
Reader profiles: viewing, editing, avatars and reading statistics.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from beanie import PydanticObjectId

from study_vault.config import get_settings
from study_vault.errors import AuthorizationError, NotFoundError, PayloadTooLargeError, ValidationError
from study_vault.models.user import User
from study_vault.schemas import ProfileUpdate, ReadingStatsUpdate
from study_vault.services import pdf_service
from study_vault.services.library_service import UploadedFile

logger = logging.getLogger(__name__)

IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


async def get_profile(user_id: PydanticObjectId, viewer: User) -> Dict[str, Any]:
    """
    Own profile: full record, with completion refreshed.
    Someone else's: the public view, unless they made it private.
    """
    if user_id == viewer.id:
        viewer.calculate_profile_completion()
        await viewer.save()
        return viewer.to_public()

    target = await User.find_one({"_id": user_id, "is_active": True})
    if not target:
        raise NotFoundError("User not found")
    if not target.privacy.profile_visible:
        raise AuthorizationError("This profile is private")
    return target.to_public_profile()


async def update_profile(user: User, changes: ProfileUpdate) -> User:
    # Read attributes rather than model_dump so nested books stay models
    updates = sorted(changes.model_dump(exclude_none=True, exclude={"privacy"}))
    for field in updates:
        setattr(user, field, getattr(changes, field))

    if changes.privacy is not None:
        for field, value in changes.privacy.model_dump(exclude_none=True).items():
            setattr(user.privacy, field, value)

    user.calculate_profile_completion()
    user.updated_at = datetime.utcnow()
    await user.save()
    logger.info("Updated profile of user %s (%s)", user.id, ", ".join(updates) or "privacy")
    return user


async def update_reading_stats(user: User, changes: ReadingStatsUpdate) -> User:
    for field, value in changes.model_dump(exclude_none=True).items():
        setattr(user.reading_stats, field, value)
    user.reading_stats.last_read_date = datetime.utcnow()
    user.updated_at = datetime.utcnow()
    await user.save()
    return user


def _check_avatar(upload: UploadedFile) -> None:
    is_image_type = upload.content_type in IMAGE_TYPES
    is_image_name = Path(upload.filename).suffix.lower() in IMAGE_EXTENSIONS
    if not (is_image_type or is_image_name):
        raise ValidationError("Only image files are allowed")
    if not upload.content:
        raise ValidationError("No file uploaded")
    max_mb = get_settings().max_avatar_size_mb
    if len(upload.content) > max_mb * 1024 * 1024:
        raise PayloadTooLargeError(f"File size exceeds {max_mb} MB")


async def update_avatar(user: User, upload: UploadedFile) -> User:
    """
    Store a new avatar image and point the user at it.
    The previous avatar is removed when it is one of our stored files.
    """
    _check_avatar(upload)
    directory = pdf_service.avatar_dir()
    file_path = pdf_service.save_upload(upload.content, upload.filename, directory)
    previous = user.avatar

    user.avatar = str(file_path)
    user.calculate_profile_completion()
    user.updated_at = datetime.utcnow()
    try:
        await user.save()
    except Exception:
        logger.exception("Saving avatar for user %s failed; removing %s", user.id, file_path)
        pdf_service.remove_file(file_path)
        raise

    if previous and pdf_service.is_stored_in(previous, directory):
        pdf_service.remove_file(previous)
    logger.info("User %s uploaded avatar %s", user.id, file_path.name)
    return user
