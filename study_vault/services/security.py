"""
Password hashing and access tokens.

Passwords: bcrypt through passlib (cost factor from settings, 12 by default).
Tokens: HS256 JWTs signed with JWT_SECRET. There is no refresh token; once a
token expires the client signs in again.
"""

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

import jwt
from passlib.context import CryptContext

from study_vault.config import get_settings
from study_vault.errors import AuthenticationError
from study_vault.models.user import User

logger = logging.getLogger(__name__)


@lru_cache
def _pwd_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password using bcrypt."""
    return _pwd_context(get_settings().bcrypt_rounds).hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain-text password against a bcrypt hash."""
    try:
        return _pwd_context(get_settings().bcrypt_rounds).verify(plain_password, hashed_password)
    except ValueError:
        # Stored value is not a recognizable hash
        logger.warning("Stored password hash could not be parsed")
        return False


def create_access_token(user: User) -> str:
    """
    Signed JWT for the user.

    Payload:
        sub   -- user ObjectId as string
        email -- user email at issue time
        iat / exp -- issued-at and expiry (JWT_EXPIRE_DAYS, default 7 days)
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_expire_days),
    }
    return jwt.encode(payload, settings.signing_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify signature and expiry. Any failure is reported as "Invalid token"
    so callers cannot tell an expired token from a forged one.
    """
    settings = get_settings()
    try:
        return jwt.decode(token, settings.signing_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise AuthenticationError("Invalid token")
    except jwt.InvalidTokenError as e:
        logger.warning("JWT verification failed: %s", e)
        raise AuthenticationError("Invalid token")
