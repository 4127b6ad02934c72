"""
Request-scoped accessors for the services built in the app lifespan.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from medireader.config import Settings
from medireader.schemas.auth import User
from medireader.services.auth_service import AuthService
from medireader.services.device_detector import DeviceDetector
from medireader.services.device_registry import DeviceRegistry
from medireader.services.enterprise_service import EnterpriseService
from medireader.services.extraction_service import ExtractionService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> DeviceRegistry:
    return request.app.state.registry


def get_detector(request: Request) -> DeviceDetector:
    return request.app.state.detector


def get_extraction_service(request: Request) -> ExtractionService:
    return request.app.state.extraction_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_enterprise_service(request: Request) -> EnterpriseService:
    return request.app.state.enterprise_service


def bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def get_current_user(
    token: Optional[str] = Depends(bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """Resolve the bearer token to a logged-in user, or 401."""
    if token is None:
        raise HTTPException(status_code=401, detail="Access token required")

    valid, user_id = auth.validate_token(token)
    user = auth.get_user(user_id) if valid and user_id else None
    if user is None:
        raise HTTPException(status_code=403, detail="Invalid or expired token")
    return user
