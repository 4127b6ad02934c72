"""
Data models for gateway login and session tokens.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    NURSE = "nurse"
    TECHNICIAN = "technician"


class GatewayUser(BaseModel):
    """User record as returned by the gateway's /auth/login."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    user_id: int
    username: str
    full_name: str = ""
    enterprise_id: int = 0
    enterprise_business_unit_id: int = 0
    has_admin_role: bool = False
    has_doctor_role: bool = False
    has_nurse_role: bool = False
    authorities: str = ""
    auth_token: str = ""


class User(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    email: str
    first_name: str
    last_name: str = ""
    role: Role
    enterprise_id: int
    enterprise_business_unit_id: int
    has_admin_role: bool = False
    has_doctor_role: bool = False
    has_nurse_role: bool = False
    authorities: str = ""
    auth_token: str = Field(default="", exclude=True)  # gateway session, never echoed


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    refresh_token: str


class LogoutRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    refresh_token: Optional[str] = None


class AuthResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    user: Optional[User] = None
    token: Optional[str] = None
    refresh_token: Optional[str] = None
    message: Optional[str] = None


class TokenValidation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    valid: bool
    user_id: Optional[str] = None
