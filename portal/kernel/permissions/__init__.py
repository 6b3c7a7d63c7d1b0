"""
Permission Core - access control evaluator and public visibility filter.
"""

from portal.kernel.permissions.access_control import (
    ANONYMOUS,
    ContentState,
    Decision,
    Operation,
    authorize,
    decide,
    evaluate,
    granted_operations,
    require_session,
)
from portal.kernel.permissions.visibility import (
    is_publicly_visible,
    public_visibility_clause,
)

__all__ = [
    "ANONYMOUS",
    "ContentState",
    "Decision",
    "Operation",
    "authorize",
    "decide",
    "evaluate",
    "granted_operations",
    "require_session",
    "is_publicly_visible",
    "public_visibility_clause",
]
