"""
Authentication: signup/signin endpoints and the current-user dependencies.

get_current_user is the access gate used by every protected route. It
verifies our own HS256 JWT (issued at signup/signin) and loads the active
User from MongoDB. get_optional_user lets public routes personalize the
response (e.g. isLiked) when a usable token happens to be sent.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from study_vault.errors import AuthenticationError, AuthorizationError
from study_vault.models.user import User
from study_vault.schemas import SigninRequest, SignupRequest
from study_vault.services import auth_service

logger = logging.getLogger(__name__)
router = APIRouter()

# auto_error=False: a missing header must give our 401 envelope, not FastAPI's 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> User:
    """Dependency: resolve the bearer token to an active User or answer 401."""
    token = credentials.credentials if credentials else None
    return await auth_service.resolve_token_user(token)


async def get_optional_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[User]:
    """Dependency: like get_current_user, but None instead of 401."""
    if not credentials:
        return None
    try:
        return await auth_service.resolve_token_user(credentials.credentials)
    except AuthenticationError:
        return None


async def require_admin(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user


@router.post(
    "/signup",
    status_code=status.HTTP_201_CREATED,
    response_model=dict,
    summary="Create an account",
)
async def signup(body: SignupRequest) -> dict:
    user, token = await auth_service.signup(body.full_name, body.email, body.password)
    return {
        "success": True,
        "message": "Account created successfully!",
        "user": user.to_public(),
        "token": token,
    }


@router.post("/signin", response_model=dict, summary="Sign in with email and password")
async def signin(body: SigninRequest) -> dict:
    user, token = await auth_service.signin(body.email, body.password)
    return {
        "success": True,
        "message": "Welcome back!",
        "user": user.to_public(),
        "token": token,
    }


@router.get("/profile", response_model=dict, summary="Current user")
async def profile(current_user: Annotated[User, Depends(get_current_user)]) -> dict:
    return {"success": True, "user": current_user.to_public()}
