"""
Kernel Data Models

SQLAlchemy models for identities, roles, profiles, publishable content and
the audit log.
"""

from portal.kernel.models.base import Base, TimestampMixin, generate_uuid
from portal.kernel.models.user import User, UserRole, RoleAssignment, RefreshToken
from portal.kernel.models.profile import Profile
from portal.kernel.models.content import (
    CONTENT_MODELS,
    ContentStatus,
    EntityKind,
    Event,
    NewsArticle,
    Notice,
    NoticeCategory,
    PublicationType,
    PublishableMixin,
    ResearchPaper,
    model_for,
)
from portal.kernel.models.event_log import EventLog, EventType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    # Identity
    "User",
    "UserRole",
    "RoleAssignment",
    "RefreshToken",
    "Profile",
    # Content
    "CONTENT_MODELS",
    "ContentStatus",
    "EntityKind",
    "Event",
    "NewsArticle",
    "Notice",
    "NoticeCategory",
    "PublicationType",
    "PublishableMixin",
    "ResearchPaper",
    "model_for",
    # Audit
    "EventLog",
    "EventType",
]
