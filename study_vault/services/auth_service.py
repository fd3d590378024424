"""
Signup, signin and bearer-token resolution.

Signin failures for an unknown email and a wrong password share one message
so the endpoint cannot be used to probe which emails are registered.
"""

import logging
from typing import Optional, Tuple

from beanie import PydanticObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

from study_vault.config import get_settings
from study_vault.errors import AuthenticationError, ConflictError
from study_vault.models.user import User
from study_vault.services.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
ACCOUNT_LOCKED = "Account is temporarily locked due to too many failed login attempts"


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def find_active_user_by_email(email: str) -> Optional[User]:
    return await User.find_one({"email": normalize_email(email), "is_active": True})


async def signup(full_name: str, email: str, password: str) -> Tuple[User, str]:
    """Create the account and return it with a fresh token."""
    email = normalize_email(email)
    if await find_active_user_by_email(email):
        raise ConflictError("User already exists with this email address")

    user = User(
        full_name=full_name.strip(),
        email=email,
        password=hash_password(password),
    )
    user.calculate_profile_completion()
    try:
        await user.insert()
    except DuplicateKeyError:
        # Lost a race with a concurrent signup for the same email
        raise ConflictError("User already exists with this email address")
    logger.info("Created user %s", user.id)
    return user, create_access_token(user)


async def signin(email: str, password: str) -> Tuple[User, str]:
    """
    Check credentials with lockout: after max_login_attempts wrong passwords
    the account is locked for lock_minutes, during which even the correct
    password is refused.
    """
    settings = get_settings()
    user = await find_active_user_by_email(email)
    if not user:
        raise AuthenticationError(INVALID_CREDENTIALS)

    if user.is_locked:
        logger.warning("Sign-in refused for locked user %s", user.id)
        raise AuthenticationError(ACCOUNT_LOCKED)

    if not verify_password(password, user.password):
        user.register_failed_login(settings.max_login_attempts, settings.lock_minutes)
        await user.save()
        if user.is_locked:
            logger.warning("User %s locked after %d failed attempts", user.id, user.login_attempts)
        else:
            logger.warning("Failed sign-in for user %s (attempt %d)", user.id, user.login_attempts)
        raise AuthenticationError(INVALID_CREDENTIALS)

    user.register_successful_login()
    await user.save()
    logger.info("User %s signed in", user.id)
    return user, create_access_token(user)


async def resolve_token_user(token: Optional[str]) -> User:
    """
    Access gate: turn a bearer token into an active User.
    Unknown and deactivated users get the same answer as a bad signature.
    """
    if not token or not token.strip():
        raise AuthenticationError("No token provided")

    payload = decode_access_token(token.strip())
    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Invalid token")

    try:
        user_id = PydanticObjectId(subject)
    except (InvalidId, TypeError):
        raise AuthenticationError("Invalid token")

    user = await User.find_one({"_id": user_id, "is_active": True})
    if not user:
        logger.warning("Token subject %s is missing or inactive", subject)
        raise AuthenticationError("Invalid token")
    return user
