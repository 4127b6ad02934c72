"""
API Router: Authentication.

Gateway-backed login plus the relay's own session token endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from medireader.api.dependencies import bearer_token, get_auth_service, get_current_user
from medireader.logging_config import get_logger
from medireader.schemas.auth import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    TokenValidation,
    User,
)
from medireader.services.auth_service import AuthService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", response_model=AuthResponse, response_model_by_alias=True)
async def login(
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Authenticate against the gateway and start a session."""
    return await auth.login(body.username, body.password)


@router.post("/refresh", response_model=AuthResponse, response_model_by_alias=True)
async def refresh(
    body: RefreshRequest,
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Rotate a refresh token into a new token pair."""
    return await auth.refresh(body.refresh_token)


@router.post("/logout", response_model=AuthResponse, response_model_by_alias=True)
async def logout(
    body: Optional[LogoutRequest] = None,
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    return await auth.logout(body.refresh_token if body else None)


@router.get("/validate", response_model=TokenValidation, response_model_by_alias=True)
async def validate(
    token: Optional[str] = Depends(bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> TokenValidation:
    """Report whether the bearer token is a live access token."""
    if token is None:
        return TokenValidation(valid=False)
    valid, user_id = auth.validate_token(token)
    return TokenValidation(valid=valid, user_id=user_id)


@router.get("/profile", response_model=AuthResponse, response_model_by_alias=True)
async def profile(user: User = Depends(get_current_user)) -> AuthResponse:
    return AuthResponse(user=user)
