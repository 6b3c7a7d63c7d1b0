"""
Profile attached 1:1 to a user identity.
"""

import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.kernel.models.base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from portal.kernel.models.user import User


class Profile(Base, TimestampMixin):
    """
    Display and contact details plus the two account flags.

    is_active gates every authenticated operation; is_verified marks a
    teacher account that an admin has reviewed.
    """

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    profile_photo: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(), nullable=True)
    faculty_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(), nullable=True)

    # Teacher fields
    designation: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    employee_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    academic_background: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    professional_experience: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Student fields
    student_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    batch: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    semester: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="profile")

    def __repr__(self) -> str:
        return f"<Profile {self.full_name} active={self.is_active}>"
