"""
Event Store service for append-only audit logging.

Mutating services call log() inside the same session as the change, so the
audit row and the change commit or roll back together.
"""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.kernel.datastore import store_call
from portal.kernel.models.base import enum_value
from portal.kernel.models.event_log import EventLog, EventType


class EventStore:
    """
    Service for managing the immutable event log.

    Usage:
        event_store = EventStore(session)
        await event_store.log(
            event_type=EventType.CONTENT_STATUS_CHANGED,
            entity_type="notice",
            entity_id=notice.id,
            user_id=actor.user_id,
            payload={"from_status": "pending", "to_status": "published"},
        )
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def log(
        self,
        event_type: EventType,
        entity_type: str,
        entity_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
        payload: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> EventLog:
        """
        Append an event to the audit log.

        Args:
            event_type: The type of event
            entity_type: The type of entity (account, notice, research_paper, ...)
            entity_id: The ID of the entity
            user_id: The acting user (None for system events)
            payload: Additional event data
            ip_address: Client IP address

        Returns:
            The created EventLog record
        """
        event = EventLog(
            event_type=enum_value(event_type),
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            payload=self._serialize_payload(payload or {}),
            ip_address=ip_address,
        )

        self.session.add(event)
        # Caller flushes/commits with the rest of the unit of work
        return event

    @store_call
    async def history(
        self,
        entity_type: str,
        entity_id: uuid.UUID,
        event_types: Optional[Iterable[EventType]] = None,
        limit: int = 100,
    ) -> List[EventLog]:
        """Events for one record or account, oldest first."""
        query = select(EventLog).where(
            EventLog.entity_type == entity_type,
            EventLog.entity_id == entity_id,
        )
        if event_types:
            query = query.where(EventLog.event_type.in_([enum_value(t) for t in event_types]))

        result = await self.session.execute(query.order_by(EventLog.created_at).limit(limit))
        return list(result.scalars().all())

    async def status_changes(self, entity_type: str, entity_id: uuid.UUID) -> List[EventLog]:
        """The publication trail of one record."""
        return await self.history(entity_type, entity_id, [EventType.CONTENT_STATUS_CHANGED])

    @store_call
    async def count(
        self,
        *,
        entity_id: Optional[uuid.UUID] = None,
        event_type: Optional[EventType] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> int:
        query = select(func.count(EventLog.id))
        if entity_id is not None:
            query = query.where(EventLog.entity_id == entity_id)
        if event_type is not None:
            query = query.where(EventLog.event_type == enum_value(event_type))
        if actor_id is not None:
            query = query.where(EventLog.user_id == actor_id)
        return (await self.session.execute(query)).scalar_one()

    def _serialize_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Convert payload values to JSON-serializable types."""
        return {key: self._serialize_value(value) for key, value in payload.items()}

    def _serialize_value(self, value: Any) -> Any:
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, dict):
            return self._serialize_payload(value)
        if isinstance(value, (list, tuple)):
            return [self._serialize_value(v) for v in value]
        return value
