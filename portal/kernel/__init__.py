"""
Kernel Layer

- Identity Core (accounts, the single role assignment, sessions)
- Permission Core (access control evaluator, public visibility filter)
- Content (publishable records and their repository)
- Immutable Event Log (every mutation logged in the same unit of work)
"""

from portal.kernel.models import (
    ContentStatus,
    EntityKind,
    Event,
    EventLog,
    EventType,
    NewsArticle,
    Notice,
    NoticeCategory,
    Profile,
    ResearchPaper,
    RoleAssignment,
    User,
    UserRole,
)

__all__ = [
    # Identity
    "User",
    "UserRole",
    "RoleAssignment",
    "Profile",
    # Content
    "ContentStatus",
    "EntityKind",
    "Notice",
    "NoticeCategory",
    "NewsArticle",
    "Event",
    "ResearchPaper",
    # Event Log
    "EventLog",
    "EventType",
]
