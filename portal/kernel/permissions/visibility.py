"""
Public visibility filter.

Applied to every read path reachable without a session. The Python predicate
is the evaluator asked about an anonymous viewPublic; the SQL clause expresses
the same rule server-side so listings and counts never see hidden rows.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.sql.elements import ColumnElement

from portal.kernel.models.base import utcnow
from portal.kernel.models.content import ContentStatus
from portal.kernel.permissions.access_control import (
    ANONYMOUS,
    ContentState,
    Operation,
    evaluate,
)


def is_publicly_visible(record, now: Optional[datetime] = None) -> bool:
    """True if an anonymous visitor may read this record right now."""
    return evaluate(
        ANONYMOUS,
        Operation.VIEW_PUBLIC,
        record.kind,
        ContentState.of(record),
        now=now,
    ).allowed


def public_visibility_clause(model, now: Optional[datetime] = None) -> ColumnElement[bool]:
    """
    WHERE clause for publicly visible rows of a content model.

    status = published, and for models with an expiry column
    (expires_at IS NULL OR expires_at > now).
    """
    clause = model.status == ContentStatus.PUBLISHED.value
    expires_at = getattr(model, "expires_at", None)
    if expires_at is not None:
        clause = and_(
            clause,
            or_(expires_at.is_(None), expires_at > (now or utcnow())),
        )
    return clause
