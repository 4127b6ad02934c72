"""
Auth Service.

Proxies logins to the backend gateway and issues the relay's own
session tokens. The gateway owns user accounts; this service only
remembers who logged in and which refresh tokens are still live.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
import jwt
from pydantic import ValidationError

from medireader.config import Settings
from medireader.errors import AuthenticationError, GatewayUnavailableError
from medireader.logging_config import get_logger
from medireader.schemas.auth import AuthResponse, GatewayUser, Role, User

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def map_role(user: GatewayUser) -> Role:
    """Highest privilege wins: admin > doctor > nurse > technician."""
    if user.has_admin_role:
        return Role.ADMIN
    if user.has_doctor_role:
        return Role.DOCTOR
    if user.has_nurse_role:
        return Role.NURSE
    return Role.TECHNICIAN


def to_user(gateway_user: GatewayUser, username: str) -> User:
    return User(
        id=str(gateway_user.user_id),
        email=username,
        first_name=gateway_user.username,
        last_name=" ".join(gateway_user.full_name.split(" ")[1:]),
        role=map_role(gateway_user),
        enterprise_id=gateway_user.enterprise_id,
        enterprise_business_unit_id=gateway_user.enterprise_business_unit_id,
        has_admin_role=gateway_user.has_admin_role,
        has_doctor_role=gateway_user.has_doctor_role,
        has_nurse_role=gateway_user.has_nurse_role,
        authorities=gateway_user.authorities,
        auth_token=gateway_user.auth_token,
    )


class AuthService:
    """
    Gateway login plus access/refresh token lifecycle.

    Args:
        settings: Gateway URL, signing secrets and token lifetimes.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._users: dict[str, User] = {}
        self._refresh_tokens: dict[str, tuple[str, datetime]] = {}
        self._access_expiry: dict[str, datetime] = {}

    # -- Login --

    async def login(self, username: str, password: str) -> AuthResponse:
        """
        Authenticate against the gateway and start a session.

        Raises:
            AuthenticationError: the gateway rejected the credentials.
            GatewayUnavailableError: the gateway could not be reached or
                answered with anything else.
        """
        url = f"{self._settings.gateway_base_url.rstrip('/')}/auth/login"
        logger.info("login_started", username=username)

        try:
            async with httpx.AsyncClient(
                timeout=self._settings.gateway_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    url,
                    json={"username": username, "password": password},
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error("login_gateway_error", username=username, error=str(e))
            raise GatewayUnavailableError("Authentication service unavailable")

        if response.status_code in (401, 403):
            logger.warning("login_rejected", username=username, status=response.status_code)
            raise AuthenticationError("Invalid username or password")
        if not response.is_success:
            logger.error("login_gateway_error", username=username, status=response.status_code)
            raise GatewayUnavailableError(
                "Authentication service unavailable",
                {"status": response.status_code},
            )

        try:
            gateway_user = GatewayUser.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error("login_gateway_bad_payload", username=username, error=str(e))
            raise GatewayUnavailableError("Authentication service unavailable")

        self._prune_expired(datetime.now(timezone.utc))
        user = to_user(gateway_user, username)
        self._users[user.id] = user
        token, refresh_token = self._issue_tokens(user.id)

        logger.info(
            "login_succeeded",
            user_id=user.id,
            role=user.role.value,
            enterprise_id=user.enterprise_id,
        )
        return AuthResponse(user=user, token=token, refresh_token=refresh_token)

    # -- Tokens --

    def _issue_tokens(self, user_id: str) -> tuple[str, str]:
        now = datetime.now(timezone.utc)
        settings = self._settings
        access_expiry = now + timedelta(hours=settings.access_token_ttl_hours)

        token = jwt.encode(
            {
                "userId": user_id,
                "type": ACCESS_TOKEN_TYPE,
                "iat": now,
                "exp": access_expiry,
            },
            settings.jwt_secret,
            algorithm=JWT_ALGORITHM,
        )

        refresh_expiry = now + timedelta(days=settings.refresh_token_ttl_days)
        refresh_token = jwt.encode(
            {
                "userId": user_id,
                "type": REFRESH_TOKEN_TYPE,
                "jti": uuid.uuid4().hex,
                "iat": now,
                "exp": refresh_expiry,
            },
            settings.jwt_refresh_secret,
            algorithm=JWT_ALGORITHM,
        )
        self._refresh_tokens[refresh_token] = (user_id, refresh_expiry)
        self._access_expiry[user_id] = access_expiry
        return token, refresh_token

    def _prune_expired(self, now: datetime) -> None:
        """Forget expired refresh tokens and users with no live token of either kind."""
        self._refresh_tokens = {
            token: entry for token, entry in self._refresh_tokens.items() if entry[1] >= now
        }
        live_users = {user_id for user_id, _ in self._refresh_tokens.values()}
        for user_id, expiry in list(self._access_expiry.items()):
            if expiry < now and user_id not in live_users:
                del self._access_expiry[user_id]
                self._users.pop(user_id, None)

    def validate_token(self, token: str) -> tuple[bool, Optional[str]]:
        """Return ``(valid, user_id)`` for an access token."""
        try:
            claims = jwt.decode(token, self._settings.jwt_secret, algorithms=[JWT_ALGORITHM])
        except jwt.InvalidTokenError:
            return False, None

        if claims.get("type") != ACCESS_TOKEN_TYPE:
            return False, None
        user_id = claims.get("userId")
        if user_id not in self._users:
            return False, None
        return True, user_id

    async def refresh(self, refresh_token: str) -> AuthResponse:
        """
        Exchange a live refresh token for a fresh token pair.

        Raises:
            AuthenticationError: the token is unknown or expired, or its
                user is no longer known.
        """
        self._prune_expired(datetime.now(timezone.utc))
        entry = self._refresh_tokens.pop(refresh_token, None)
        if entry is None or entry[1] < datetime.now(timezone.utc):
            raise AuthenticationError("Invalid or expired refresh token")

        user = self._users.get(entry[0])
        if user is None:
            raise AuthenticationError("User not found")

        token, new_refresh_token = self._issue_tokens(user.id)
        logger.info("token_refreshed", user_id=user.id)
        return AuthResponse(user=user, token=token, refresh_token=new_refresh_token)

    async def logout(self, refresh_token: Optional[str] = None) -> AuthResponse:
        if refresh_token:
            self._refresh_tokens.pop(refresh_token, None)
        return AuthResponse(message="Logged out successfully")

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)
