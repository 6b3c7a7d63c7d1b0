"""
Publication state machine for notices, news, events and research papers.

draft -> pending -> published -> archived, plus pending -> archived for a
rejection. Nothing leaves archived. Each transition is checked by the access
control evaluator first and by the table below second, then written as one
UPDATE that only matches while the record still has the status it was
checked against.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from portal.kernel.content.repository import ContentRepository
from portal.kernel.errors import InvalidTransitionError, NotFoundError, ValidationError
from portal.kernel.events.event_store import EventStore
from portal.kernel.identity.session import Session
from portal.kernel.models.base import enum_value, utcnow
from portal.kernel.models.content import ContentStatus, EntityKind
from portal.kernel.models.event_log import EventType
from portal.kernel.permissions.access_control import (
    ContentState,
    Operation,
    authorize,
    require_session,
)
from portal.logging_config import get_logger

logger = get_logger(__name__)


class Trigger(str, Enum):
    """What a caller asks the state machine to do."""
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    ARCHIVE = "archive"


# Trigger -> (target status, evaluator operation)
_TRIGGERS: Dict[Trigger, Tuple[ContentStatus, Operation]] = {
    Trigger.SUBMIT: (ContentStatus.PENDING, Operation.SUBMIT_FOR_REVIEW),
    Trigger.APPROVE: (ContentStatus.PUBLISHED, Operation.APPROVE),
    Trigger.REJECT: (ContentStatus.ARCHIVED, Operation.REJECT),
    Trigger.ARCHIVE: (ContentStatus.ARCHIVED, Operation.REJECT),
}

# Valid transitions: (from_status, to_status) -> operation that performs it
_TRANSITIONS: Dict[Tuple[ContentStatus, ContentStatus], Operation] = {
    (ContentStatus.DRAFT, ContentStatus.PENDING): Operation.SUBMIT_FOR_REVIEW,
    (ContentStatus.PENDING, ContentStatus.PUBLISHED): Operation.APPROVE,
    (ContentStatus.PENDING, ContentStatus.ARCHIVED): Operation.REJECT,
    (ContentStatus.PUBLISHED, ContentStatus.ARCHIVED): Operation.REJECT,
}


def valid_transitions(from_status: ContentStatus) -> List[ContentStatus]:
    """Statuses reachable in one step from the given status."""
    return [to for (source, to) in _TRANSITIONS if source == ContentStatus(from_status)]


def can_transition(from_status: ContentStatus, to_status: ContentStatus) -> bool:
    return (ContentStatus(from_status), ContentStatus(to_status)) in _TRANSITIONS


def trigger_operation(trigger: Trigger) -> Operation:
    """Evaluator operation a trigger is authorized as."""
    return _TRIGGERS[Trigger(trigger)][1]


def source_statuses(trigger: Trigger) -> List[ContentStatus]:
    """Statuses a trigger can legally start from."""
    target, operation = _TRIGGERS[Trigger(trigger)]
    return [source for (source, to), op in _TRANSITIONS.items() if to == target and op == operation]


def is_applicable(trigger: Trigger, current: ContentStatus) -> bool:
    """True if the trigger does something (or nothing, idempotently) from the current status."""
    trigger = Trigger(trigger)
    current = ContentStatus(current)
    if trigger == Trigger.APPROVE and current == ContentStatus.PUBLISHED:
        return True
    return current in source_statuses(trigger)


@dataclass(frozen=True)
class TransitionPlan:
    """
    Column changes for one transition.

    set_once columns keep their stored value if they already have one.
    """

    from_status: ContentStatus
    to_status: ContentStatus
    operation: Operation
    values: Dict[str, Any] = field(default_factory=dict)
    set_once: Dict[str, datetime] = field(default_factory=dict)


def plan_transition(
    trigger: Trigger,
    kind: EntityKind,
    current: ContentStatus,
    *,
    actor_id: uuid.UUID,
    now: datetime,
    review_notes: Optional[str] = None,
) -> Optional[TransitionPlan]:
    """
    Work out what a trigger does to a record in the given status.

    Returns None when there is nothing to write (approving a record that is
    already published).

    Raises:
        InvalidTransitionError: no such transition from the current status
        ValidationError: a rejection without review notes
    """
    trigger = Trigger(trigger)
    kind = EntityKind(kind)
    current = ContentStatus(current)
    target, operation = _TRIGGERS[trigger]

    if trigger == Trigger.APPROVE and current == ContentStatus.PUBLISHED:
        return None

    notes = (review_notes or "").strip()
    if trigger == Trigger.REJECT and not notes:
        raise ValidationError("Review notes are required to reject", field="review_notes")

    if not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)

    if current == ContentStatus.PENDING and target == ContentStatus.ARCHIVED and not notes:
        raise ValidationError("Review notes are required to reject", field="review_notes")

    values: Dict[str, Any] = {"status": target.value}
    set_once: Dict[str, datetime] = {}

    if target == ContentStatus.PUBLISHED:
        set_once["published_at"] = now
    if notes and trigger != Trigger.SUBMIT:
        values["review_notes"] = notes

    if kind == EntityKind.RESEARCH_PAPER:
        if trigger == Trigger.SUBMIT:
            values["submitted_at"] = now
        else:
            values["reviewed_by"] = actor_id
        if target == ContentStatus.PUBLISHED:
            set_once["approved_at"] = now

    return TransitionPlan(
        from_status=current,
        to_status=target,
        operation=operation,
        values=values,
        set_once=set_once,
    )


class PublicationStateMachine:
    """Performs status transitions with audit logging."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def submit_for_review(
        self,
        actor: Optional[Session],
        kind: EntityKind,
        record_id: uuid.UUID,
        ip_address: Optional[str] = None,
    ):
        """draft -> pending, by the record's author."""
        return await self.transition(Trigger.SUBMIT, actor, kind, record_id, ip_address=ip_address)

    async def approve(
        self,
        actor: Optional[Session],
        kind: EntityKind,
        record_id: uuid.UUID,
        review_notes: Optional[str] = None,
        ip_address: Optional[str] = None,
    ):
        """pending -> published. Approving a published record changes nothing."""
        return await self.transition(
            Trigger.APPROVE, actor, kind, record_id,
            review_notes=review_notes, ip_address=ip_address,
        )

    async def reject(
        self,
        actor: Optional[Session],
        kind: EntityKind,
        record_id: uuid.UUID,
        review_notes: Optional[str],
        ip_address: Optional[str] = None,
    ):
        """pending or published -> archived, with a reason."""
        return await self.transition(
            Trigger.REJECT, actor, kind, record_id,
            review_notes=review_notes, ip_address=ip_address,
        )

    async def archive(
        self,
        actor: Optional[Session],
        kind: EntityKind,
        record_id: uuid.UUID,
        review_notes: Optional[str] = None,
        ip_address: Optional[str] = None,
    ):
        """Retract published content. Archiving a pending record is a rejection and needs notes."""
        return await self.transition(
            Trigger.ARCHIVE, actor, kind, record_id,
            review_notes=review_notes, ip_address=ip_address,
        )

    async def transition(
        self,
        trigger: Trigger,
        actor: Optional[Session],
        kind: EntityKind,
        record_id: uuid.UUID,
        *,
        review_notes: Optional[str] = None,
        ip_address: Optional[str] = None,
    ):
        """
        Check and apply one transition.

        Raises:
            AuthenticationError: no usable session
            NotFoundError: no such record
            AuthorizationError: the evaluator denies the operation
            InvalidTransitionError: the current status has no such transition
            ValidationError: a rejection without review notes
        """
        require_session(actor)
        kind = EntityKind(kind)
        operation = trigger_operation(trigger)
        repository = ContentRepository.for_kind(self.session, kind)

        record = await repository.get(record_id)
        if record is None:
            raise NotFoundError(f"{kind.value} not found")

        state = ContentState.of(record)
        current = state.status
        if not is_applicable(trigger, current):
            # Actors who could perform the trigger from a legal status learn the status is wrong
            legal_state = replace(state, status=source_statuses(trigger)[0])
            authorize(actor, operation, kind, legal_state, entity_id=record_id)
            raise InvalidTransitionError(current.value, _TRIGGERS[Trigger(trigger)][0].value)

        actor = authorize(actor, operation, kind, state, entity_id=record_id)
        plan = plan_transition(
            trigger,
            kind,
            current,
            actor_id=actor.user_id,
            now=utcnow(),
            review_notes=review_notes,
        )
        if plan is None:
            return record

        model = repository.model
        values = dict(plan.values)
        for column, value in plan.set_once.items():
            values[column] = func.coalesce(getattr(model, column), value)

        written = await repository.update_fields(
            record_id,
            values,
            where=[model.status == plan.from_status.value],
        )
        if not written:
            return await self._lost_race(repository, trigger, plan, record_id)

        await self.event_store.log(
            event_type=EventType.CONTENT_STATUS_CHANGED,
            entity_type=kind.value,
            entity_id=record_id,
            user_id=actor.user_id,
            payload={
                "from_status": plan.from_status,
                "to_status": plan.to_status,
                "operation": plan.operation,
                "review_notes": plan.values.get("review_notes"),
            },
            ip_address=ip_address,
        )
        logger.info(
            "Status changed",
            extra={
                "entity_kind": kind.value,
                "entity_id": str(record_id),
                "actor_id": str(actor.user_id),
                "from_status": plan.from_status.value,
                "to_status": plan.to_status.value,
            },
        )
        return await repository.get(record_id)

    async def _lost_race(self, repository, trigger: Trigger, plan: TransitionPlan, record_id: uuid.UUID):
        """The status moved between the check and the write."""
        record = await repository.get(record_id)
        if record is None:
            raise NotFoundError("Record was deleted")
        current = ContentStatus(enum_value(record.status))
        if trigger == Trigger.APPROVE and current == ContentStatus.PUBLISHED:
            return record
        logger.warning(
            "Transition lost a concurrent update",
            extra={"entity_id": str(record_id), "expected": plan.from_status.value, "found": current.value},
        )
        raise InvalidTransitionError(
            current.value,
            plan.to_status.value,
            f"Status changed to {current.value} while the request was in flight",
        )
