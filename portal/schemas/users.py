"""
Account administration schemas.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from portal.kernel.identity.account_service import AccountView
from portal.kernel.models.user import UserRole
from portal.schemas.auth import check_password_strength


class ProfileFields(BaseModel):
    """Editable profile columns."""

    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    profile_photo: Optional[str] = Field(None, max_length=1000)
    department_id: Optional[uuid.UUID] = None
    faculty_id: Optional[uuid.UUID] = None
    designation: Optional[str] = Field(None, max_length=255)
    employee_id: Optional[str] = Field(None, max_length=100)
    academic_background: Optional[str] = None
    professional_experience: Optional[str] = None
    student_id: Optional[str] = Field(None, max_length=100)
    batch: Optional[str] = Field(None, max_length=50)
    semester: Optional[int] = Field(None, ge=1, le=12)


class AccountCreate(ProfileFields):
    """Admin-created account; a password is generated when omitted."""

    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=255)
    role: UserRole = UserRole.TEACHER
    password: Optional[str] = Field(None, min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Optional[str]) -> Optional[str]:
        return check_password_strength(v) if v is not None else v

    def profile_fields(self) -> Dict[str, Any]:
        return self.model_dump(
            exclude={"email", "full_name", "role", "password"},
            exclude_none=True,
        )


class RoleChangeRequest(BaseModel):
    role: UserRole


class ActivationRequest(BaseModel):
    is_active: bool


class PasswordResetRequest(BaseModel):
    new_password: Optional[str] = Field(None, min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: Optional[str]) -> Optional[str]:
        return check_password_strength(v) if v is not None else v


class PasswordResetResponse(BaseModel):
    user_id: uuid.UUID
    password: str


class AccountResponse(BaseModel):
    """One account with its role and profile."""

    id: uuid.UUID
    email: str
    role: UserRole
    full_name: str
    is_active: bool
    is_verified: bool
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    profile: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_view(cls, view: AccountView) -> "AccountResponse":
        return cls(
            id=view.user_id,
            email=view.email,
            role=view.role,
            full_name=view.full_name,
            is_active=view.is_active,
            is_verified=view.is_verified,
            last_login=view.last_login,
            created_at=view.created_at,
            profile={k: (str(v) if isinstance(v, uuid.UUID) else v) for k, v in view.profile.items()},
        )


class AccountCreatedResponse(AccountResponse):
    # Only set when the password was generated
    temporary_password: Optional[str] = None
