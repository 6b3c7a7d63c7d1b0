"""
Authentication schemas.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from portal.kernel.identity.session import Session
from portal.kernel.models.user import UserRole


def check_password_strength(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not any(c.isupper() for c in v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one digit")
    return v


class RegisterRequest(BaseModel):
    """Self-registration request. Admin accounts cannot be requested here."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=255)
    role: UserRole = UserRole.STUDENT
    phone: Optional[str] = Field(None, max_length=50)
    department_id: Optional[uuid.UUID] = None
    # Teacher fields
    designation: Optional[str] = Field(None, max_length=255)
    employee_id: Optional[str] = Field(None, max_length=100)
    # Student fields
    student_id: Optional[str] = Field(None, max_length=100)
    batch: Optional[str] = Field(None, max_length=50)
    semester: Optional[int] = Field(None, ge=1, le=12)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)

    def profile_fields(self) -> dict:
        return self.model_dump(
            exclude={"email", "password", "full_name", "role"},
            exclude_none=True,
        )


class LoginRequest(BaseModel):
    """Login request."""

    email: EmailStr
    password: str


class SessionResponse(BaseModel):
    """The signed-in account."""

    id: uuid.UUID
    email: str
    role: UserRole
    display_name: str
    is_active: bool
    is_verified: bool

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        return cls(
            id=session.user_id,
            email=session.email,
            role=session.role,
            display_name=session.display_name,
            is_active=session.is_active,
            is_verified=session.is_verified,
        )


class TokenResponse(BaseModel):
    """Authentication token response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: SessionResponse


class RefreshTokenRequest(BaseModel):
    """Token refresh request."""

    refresh_token: str


class LogoutRequest(BaseModel):
    """Logout request; without a refresh token every session of the user is revoked."""

    refresh_token: Optional[str] = None
