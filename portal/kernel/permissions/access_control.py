"""
Access control evaluator.

One closed-world rule table decides, for (actor role, operation, entity kind,
entity state), whether the operation is allowed. Anything not granted below is
denied. The route guard, every mutating service call and every read path go
through this module, so no page or endpoint carries its own role check.

decide() and evaluate() are pure: they look only at their arguments.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Tuple

from portal.kernel.errors import AuthenticationError, AuthorizationError
from portal.kernel.identity.session import Session, effective_session
from portal.kernel.models.base import as_utc, enum_value, utcnow
from portal.kernel.models.content import ContentStatus, EntityKind
from portal.kernel.models.user import UserRole
from portal.logging_config import get_logger

logger = get_logger(__name__)


class Operation(str, Enum):
    """Operations the evaluator knows about."""
    CREATE = "create"
    EDIT_OWN_DRAFT = "editOwnDraft"
    EDIT_ANY = "editAny"
    SUBMIT_FOR_REVIEW = "submitForReview"
    APPROVE = "approve"
    REJECT = "reject"
    DELETE_ANY = "deleteAny"
    VIEW_PRIVATE = "viewPrivate"
    VIEW_PUBLIC = "viewPublic"
    # Account administration
    CHANGE_ROLE = "changeRole"
    MANAGE_ACCOUNT = "manageAccount"
    # Portal entry, checked by the route guard
    ENTER_ADMIN_PORTAL = "enterAdminPortal"
    ENTER_TEACHER_PORTAL = "enterTeacherPortal"
    ENTER_STUDENT_PORTAL = "enterStudentPortal"


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOW


@dataclass(frozen=True)
class ContentState:
    """The parts of a record the evaluator needs: status, owner, expiry."""

    status: Optional[ContentStatus] = None
    owner_id: Optional[uuid.UUID] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def of(cls, record) -> "ContentState":
        """Snapshot a content model instance."""
        status = getattr(record, "status", None)
        return cls(
            status=ContentStatus(enum_value(status)) if status is not None else None,
            owner_id=getattr(record, "created_by", None),
            expires_at=getattr(record, "expires_at", None),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Expired once expires_at is not in the future."""
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) <= as_utc(now or utcnow())


@dataclass(frozen=True)
class _Facts:
    status: Optional[ContentStatus]
    is_owner: bool
    expired: bool


Rule = Callable[[_Facts], bool]

ADMIN_MANAGED_KINDS: FrozenSet[EntityKind] = frozenset({
    EntityKind.NOTICE,
    EntityKind.NEWS,
    EntityKind.EVENT,
})
CONTENT_KINDS: FrozenSet[EntityKind] = ADMIN_MANAGED_KINDS | {EntityKind.RESEARCH_PAPER}

EDITABLE_DRAFT_STATUSES: FrozenSet[ContentStatus] = frozenset({
    ContentStatus.DRAFT,
    ContentStatus.PENDING,
})

# Sentinel role for visitors without a (usable) session
ANONYMOUS = None

_ALL_ROLES = (UserRole.ADMIN, UserRole.TEACHER, UserRole.STUDENT, ANONYMOUS)


def _always(facts: _Facts) -> bool:
    return True


def _owner(facts: _Facts) -> bool:
    return facts.is_owner


def _draft(facts: _Facts) -> bool:
    return facts.status == ContentStatus.DRAFT


def _own_draft(facts: _Facts) -> bool:
    return facts.is_owner and facts.status == ContentStatus.DRAFT


def _editable(facts: _Facts) -> bool:
    return facts.status in EDITABLE_DRAFT_STATUSES


def _own_editable(facts: _Facts) -> bool:
    return facts.is_owner and facts.status in EDITABLE_DRAFT_STATUSES


def _publicly_visible(facts: _Facts) -> bool:
    return facts.status == ContentStatus.PUBLISHED and not facts.expired


_RULES: Dict[Tuple[Operation, EntityKind], Dict[Optional[UserRole], Rule]] = {}


def _grant(
    operations: Iterable[Operation],
    kinds: Iterable[EntityKind],
    roles: Iterable[Optional[UserRole]],
    rule: Rule = _always,
) -> None:
    for operation in operations:
        for kind in kinds:
            entry = _RULES.setdefault((operation, kind), {})
            for role in roles:
                entry[role] = rule


# Notices, news and events are administered by admins only
_grant(
    (Operation.CREATE, Operation.EDIT_ANY, Operation.APPROVE, Operation.REJECT, Operation.DELETE_ANY),
    ADMIN_MANAGED_KINDS,
    (UserRole.ADMIN,),
)
_grant((Operation.SUBMIT_FOR_REVIEW,), ADMIN_MANAGED_KINDS, (UserRole.ADMIN,), _draft)

# Research papers: authored by teachers, reviewed by admins
_grant((Operation.CREATE,), (EntityKind.RESEARCH_PAPER,), (UserRole.ADMIN, UserRole.TEACHER))
_grant((Operation.SUBMIT_FOR_REVIEW,), (EntityKind.RESEARCH_PAPER,), (UserRole.ADMIN,), _draft)
_grant((Operation.SUBMIT_FOR_REVIEW,), (EntityKind.RESEARCH_PAPER,), (UserRole.TEACHER,), _own_draft)
_grant(
    (Operation.APPROVE, Operation.REJECT, Operation.DELETE_ANY),
    (EntityKind.RESEARCH_PAPER,),
    (UserRole.ADMIN,),
)
_grant((Operation.EDIT_OWN_DRAFT,), (EntityKind.RESEARCH_PAPER,), (UserRole.ADMIN,), _editable)
_grant((Operation.EDIT_OWN_DRAFT,), (EntityKind.RESEARCH_PAPER,), (UserRole.TEACHER,), _own_editable)

# Private (any status) reads
_grant((Operation.VIEW_PRIVATE,), CONTENT_KINDS, (UserRole.ADMIN,))
_grant((Operation.VIEW_PRIVATE,), CONTENT_KINDS, (UserRole.TEACHER,), _owner)

# Public reads: same rule for everyone, including anonymous visitors
_grant((Operation.VIEW_PUBLIC,), CONTENT_KINDS, _ALL_ROLES, _publicly_visible)

# Account administration
_grant((Operation.CHANGE_ROLE, Operation.MANAGE_ACCOUNT), (EntityKind.ACCOUNT,), (UserRole.ADMIN,))

# Each portal admits its own role only
PORTAL_OPERATIONS: Dict[UserRole, Operation] = {
    UserRole.ADMIN: Operation.ENTER_ADMIN_PORTAL,
    UserRole.TEACHER: Operation.ENTER_TEACHER_PORTAL,
    UserRole.STUDENT: Operation.ENTER_STUDENT_PORTAL,
}
for _role, _operation in PORTAL_OPERATIONS.items():
    _grant((_operation,), (EntityKind.ACCOUNT,), (_role,))


def decide(
    actor_role: Optional[UserRole],
    operation: Operation,
    entity_kind: EntityKind,
    entity_status: Optional[ContentStatus] = None,
    *,
    is_owner: bool = False,
    expired: bool = False,
) -> Decision:
    """
    Decide whether a role may perform an operation on an entity.

    Args:
        actor_role: The actor's role, or None for an anonymous (or deactivated) actor
        operation: The requested operation
        entity_kind: Kind of the target record
        entity_status: Current status of the target record, if it exists
        is_owner: Whether the actor authored the target record
        expired: Whether the target record's expiry has passed

    Returns:
        Decision.ALLOW only if a rule grants it; Decision.DENY otherwise.
    """
    try:
        key = (Operation(operation), EntityKind(entity_kind))
        role = UserRole(actor_role) if actor_role is not None else ANONYMOUS
        status = ContentStatus(entity_status) if entity_status is not None else None
    except ValueError:
        return Decision.DENY

    rule = _RULES.get(key, {}).get(role)
    if rule is None:
        return Decision.DENY

    facts = _Facts(status=status, is_owner=is_owner, expired=expired)
    return Decision.ALLOW if rule(facts) else Decision.DENY


def evaluate(
    session: Optional[Session],
    operation: Operation,
    entity_kind: EntityKind,
    state: Optional[ContentState] = None,
    *,
    now: Optional[datetime] = None,
) -> Decision:
    """
    Decide for a concrete session and record snapshot.

    A deactivated session is evaluated as anonymous.
    """
    actor = effective_session(session)
    state = state or ContentState()
    return decide(
        actor.role if actor else ANONYMOUS,
        operation,
        entity_kind,
        state.status,
        is_owner=bool(actor and state.owner_id is not None and state.owner_id == actor.user_id),
        expired=state.is_expired(now),
    )


def require_session(session: Optional[Session]) -> Session:
    """
    The session, if it is usable at all.

    Raises:
        AuthenticationError: no session, or the account is deactivated
    """
    actor = effective_session(session)
    if actor is not None:
        return actor
    if session is not None:
        raise AuthenticationError("Account is deactivated")
    raise AuthenticationError("Sign-in required")


def authorize(
    session: Optional[Session],
    operation: Operation,
    entity_kind: EntityKind,
    state: Optional[ContentState] = None,
    *,
    entity_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> Optional[Session]:
    """
    Raise unless the evaluator allows the operation.

    Raises:
        AuthenticationError: no usable session (absent or deactivated)
        AuthorizationError: session is valid but the operation is denied

    Returns:
        The effective session (None only for operations open to anonymous visitors).
    """
    if evaluate(session, operation, entity_kind, state, now=now).allowed:
        return effective_session(session)

    log_extra = {
        "operation": enum_value(operation),
        "entity_kind": enum_value(entity_kind),
        "entity_id": str(entity_id) if entity_id else None,
        "actor_id": str(session.user_id) if session else None,
    }
    if effective_session(session) is None:
        logger.info("Rejected unauthenticated request", extra=log_extra)
    actor = require_session(session)

    logger.warning("Access denied", extra={**log_extra, "role": enum_value(actor.role)})
    raise AuthorizationError(
        f"Role '{enum_value(actor.role)}' may not {enum_value(operation)} this {enum_value(entity_kind)}"
    )


def granted_operations(actor_role: Optional[UserRole], entity_kind: EntityKind) -> FrozenSet[Operation]:
    """Operations a role holds at least conditionally on a kind. Used for capability listings."""
    return frozenset(
        operation
        for (operation, kind), roles in _RULES.items()
        if kind == entity_kind and actor_role in roles
    )
