"""
Role Store: the only source of a user's role.
"""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.kernel.datastore import store_call
from portal.kernel.errors import ConflictError, NotFoundError, ValidationError
from portal.kernel.events.event_store import EventStore
from portal.kernel.identity.session import Session
from portal.kernel.models.base import enum_value
from portal.kernel.models.content import EntityKind
from portal.kernel.models.event_log import EventType
from portal.kernel.models.user import RoleAssignment, UserRole
from portal.kernel.permissions.access_control import Operation, authorize
from portal.logging_config import get_logger

logger = get_logger(__name__)


class RoleStore:
    """Maps a user identity to exactly one role."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    @store_call
    async def get_assignment(self, user_id: uuid.UUID) -> Optional[RoleAssignment]:
        result = await self.session.execute(
            select(RoleAssignment).where(RoleAssignment.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_role(self, user_id: uuid.UUID) -> Optional[UserRole]:
        """The user's role, or None if no assignment exists."""
        assignment = await self.get_assignment(user_id)
        if assignment is None:
            return None
        return UserRole(enum_value(assignment.role))

    @store_call
    async def assign_initial(self, user_id: uuid.UUID, role: UserRole) -> RoleAssignment:
        """
        Create the single role assignment at account creation.

        Raises:
            ConflictError: the user already has a role
        """
        if await self.get_assignment(user_id) is not None:
            raise ConflictError("User already has a role assignment")

        assignment = RoleAssignment(user_id=user_id, role=UserRole(role))
        self.session.add(assignment)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError("User already has a role assignment") from exc
        return assignment

    async def change_role(
        self,
        actor: Optional[Session],
        user_id: uuid.UUID,
        new_role: UserRole,
        ip_address: Optional[str] = None,
    ) -> RoleAssignment:
        """
        Change a user's role. Admin only.

        Raises:
            AuthenticationError / AuthorizationError: actor may not change roles
            ValidationError: an admin tried to change their own role
            NotFoundError: the user has no role assignment
        """
        actor = authorize(actor, Operation.CHANGE_ROLE, EntityKind.ACCOUNT, entity_id=user_id)
        if actor.user_id == user_id:
            raise ValidationError("Admins cannot change their own role", field="role")

        assignment = await self.get_assignment(user_id)
        if assignment is None:
            raise NotFoundError("User not found")

        previous = enum_value(assignment.role)
        new_role = UserRole(new_role)
        if previous == new_role.value:
            return assignment

        assignment.role = new_role
        await self.event_store.log(
            event_type=EventType.USER_ROLE_CHANGED,
            entity_type=EntityKind.ACCOUNT.value,
            entity_id=user_id,
            user_id=actor.user_id,
            payload={"previous_role": previous, "new_role": new_role},
            ip_address=ip_address,
        )
        await self._flush()
        logger.info(
            "Role changed",
            extra={"user_id": str(user_id), "previous_role": previous, "new_role": new_role.value},
        )
        return assignment

    @store_call
    async def _flush(self) -> None:
        await self.session.flush()
