"""
Account administration: the admin-only operations on other users' accounts.

Every call is authorized as manageAccount on the account kind; role changes
go through the Role Store.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portal.kernel.datastore import store_call
from portal.kernel.errors import NotFoundError, ValidationError
from portal.kernel.events.event_store import EventStore
from portal.kernel.identity.identity_service import IdentityService
from portal.kernel.identity.password import generate_temporary_password, hash_password
from portal.kernel.identity.role_store import RoleStore
from portal.kernel.identity.session import Session
from portal.kernel.models.base import enum_value
from portal.kernel.models.content import EntityKind
from portal.kernel.models.event_log import EventType
from portal.kernel.models.profile import Profile
from portal.kernel.models.user import RoleAssignment, User, UserRole
from portal.kernel.permissions.access_control import Operation, authorize
from portal.logging_config import get_logger

logger = get_logger(__name__)

PROFILE_FIELDS: FrozenSet[str] = frozenset({
    "full_name", "phone", "profile_photo", "department_id", "faculty_id",
    "designation", "employee_id", "academic_background", "professional_experience",
    "student_id", "batch", "semester",
})

# Accounts an admin may remove or reset
MANAGED_ROLES: FrozenSet[UserRole] = frozenset({UserRole.TEACHER, UserRole.STUDENT})


@dataclass(frozen=True)
class AccountView:
    """One account as the admin screens show it."""

    user_id: uuid.UUID
    email: str
    role: UserRole
    full_name: str
    is_active: bool
    is_verified: bool
    last_login: Optional[datetime]
    created_at: Optional[datetime]
    profile: Dict[str, Any]

    @classmethod
    def from_row(cls, user: User, assignment: RoleAssignment, profile: Optional[Profile]) -> "AccountView":
        return cls(
            user_id=user.id,
            email=user.email,
            role=UserRole(enum_value(assignment.role)),
            full_name=profile.full_name if profile else user.email,
            is_active=bool(profile and profile.is_active),
            is_verified=bool(profile and profile.is_verified),
            last_login=user.last_login,
            created_at=user.created_at,
            profile={name: getattr(profile, name) for name in PROFILE_FIELDS} if profile else {},
        )


class AccountService:
    """Admin operations on user accounts."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.role_store = RoleStore(session)
        self.event_store = EventStore(session)

    def _base_query(self):
        return (
            select(User, RoleAssignment, Profile)
            .join(RoleAssignment, RoleAssignment.user_id == User.id)
            .outerjoin(Profile, Profile.user_id == User.id)
            .execution_options(populate_existing=True)
        )

    @store_call
    async def _fetch(self, user_id: uuid.UUID) -> Optional[AccountView]:
        row = (await self.session.execute(self._base_query().where(User.id == user_id))).one_or_none()
        return AccountView.from_row(*row) if row else None

    async def _require(self, user_id: uuid.UUID) -> AccountView:
        account = await self._fetch(user_id)
        if account is None:
            raise NotFoundError("User not found")
        return account

    async def list_accounts(
        self,
        actor: Optional[Session],
        *,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        is_verified: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[AccountView], int]:
        """Accounts with optional role/flag/text filters, newest first."""
        authorize(actor, Operation.MANAGE_ACCOUNT, EntityKind.ACCOUNT)
        return await self._list(
            role=role,
            is_active=is_active,
            is_verified=is_verified,
            search=search,
            page=page,
            page_size=page_size,
        )

    @store_call
    async def _list(self, *, role, is_active, is_verified, search, page, page_size):
        query = self._base_query()
        if role is not None:
            query = query.where(RoleAssignment.role == UserRole(role).value)
        if is_active is not None:
            query = query.where(Profile.is_active.is_(is_active))
        if is_verified is not None:
            query = query.where(Profile.is_verified.is_(is_verified))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(or_(User.email.ilike(pattern), Profile.full_name.ilike(pattern)))

        total = (await self.session.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar_one()

        page_size = max(1, page_size)
        query = query.order_by(User.created_at.desc()).offset((max(page, 1) - 1) * page_size).limit(page_size)
        rows = (await self.session.execute(query)).all()
        return [AccountView.from_row(*row) for row in rows], total

    async def get_account(self, actor: Optional[Session], user_id: uuid.UUID) -> AccountView:
        authorize(actor, Operation.MANAGE_ACCOUNT, EntityKind.ACCOUNT, entity_id=user_id)
        return await self._require(user_id)

    async def create_account(
        self,
        actor: Optional[Session],
        email: str,
        display_name: str,
        role: UserRole = UserRole.TEACHER,
        password: Optional[str] = None,
        profile_fields: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> Tuple[AccountView, Optional[str]]:
        """
        Create an active, verified account.

        Returns the account and the generated password when none was given.
        """
        authorize(actor, Operation.MANAGE_ACCOUNT, EntityKind.ACCOUNT)
        self._check_profile_fields(profile_fields or {})

        generated = None if password else generate_temporary_password()
        user = await IdentityService(self.session).sign_up(
            email,
            password or generated,
            display_name,
            role,
            created_by=actor,
            profile_fields=profile_fields,
            ip_address=ip_address,
        )
        return await self._require(user.id), generated

    async def update_profile(
        self,
        actor: Optional[Session],
        user_id: uuid.UUID,
        fields: Dict[str, Any],
        ip_address: Optional[str] = None,
    ) -> AccountView:
        actor = authorize(actor, Operation.MANAGE_ACCOUNT, EntityKind.ACCOUNT, entity_id=user_id)
        self._check_profile_fields(fields)
        if "full_name" in fields and not (fields["full_name"] or "").strip():
            raise ValidationError("Full name is required", field="full_name")

        await self._require(user_id)
        if fields:
            await self._update_profile_row(user_id, fields)
            await self.event_store.log(
                event_type=EventType.USER_PROFILE_UPDATED,
                entity_type=EntityKind.ACCOUNT.value,
                entity_id=user_id,
                user_id=actor.user_id,
                payload={"fields": sorted(fields)},
                ip_address=ip_address,
            )
        return await self._require(user_id)

    async def set_active(
        self,
        actor: Optional[Session],
        user_id: uuid.UUID,
        active: bool,
        ip_address: Optional[str] = None,
    ) -> AccountView:
        """Activate or deactivate. Deactivation also revokes refresh tokens."""
        actor = authorize(actor, Operation.MANAGE_ACCOUNT, EntityKind.ACCOUNT, entity_id=user_id)
        if actor.user_id == user_id and not active:
            raise ValidationError("Admins cannot deactivate their own account", field="is_active")

        account = await self._require(user_id)
        if account.is_active == active:
            return account

        await self._update_profile_row(user_id, {"is_active": active})
        if not active:
            await IdentityService(self.session).revoke_tokens(user_id)

        await self.event_store.log(
            event_type=EventType.USER_ACTIVATED if active else EventType.USER_DEACTIVATED,
            entity_type=EntityKind.ACCOUNT.value,
            entity_id=user_id,
            user_id=actor.user_id,
            ip_address=ip_address,
        )
        logger.info("Account activation changed", extra={"user_id": str(user_id), "active": active})
        return await self._require(user_id)

    async def verify_teacher(
        self,
        actor: Optional[Session],
        user_id: uuid.UUID,
        ip_address: Optional[str] = None,
    ) -> AccountView:
        actor = authorize(actor, Operation.MANAGE_ACCOUNT, EntityKind.ACCOUNT, entity_id=user_id)
        account = await self._require(user_id)
        if account.role != UserRole.TEACHER:
            raise ValidationError("Only teacher accounts are verified", field="user_id")
        if account.is_verified:
            return account

        await self._update_profile_row(user_id, {"is_verified": True})
        await self.event_store.log(
            event_type=EventType.USER_VERIFIED,
            entity_type=EntityKind.ACCOUNT.value,
            entity_id=user_id,
            user_id=actor.user_id,
            ip_address=ip_address,
        )
        return await self._require(user_id)

    async def change_role(
        self,
        actor: Optional[Session],
        user_id: uuid.UUID,
        role: UserRole,
        ip_address: Optional[str] = None,
    ) -> AccountView:
        await self.role_store.change_role(actor, user_id, role, ip_address=ip_address)
        return await self._require(user_id)

    async def reset_password(
        self,
        actor: Optional[Session],
        user_id: uuid.UUID,
        new_password: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> str:
        """Set a new password for a teacher or student and sign them out everywhere."""
        actor = authorize(actor, Operation.MANAGE_ACCOUNT, EntityKind.ACCOUNT, entity_id=user_id)
        account = await self._require(user_id)
        if account.role not in MANAGED_ROLES:
            raise ValidationError("Passwords can only be reset for teachers and students", field="user_id")

        password = new_password or generate_temporary_password()
        await self._update_password(user_id, hash_password(password))
        await IdentityService(self.session).revoke_tokens(user_id)
        await self.event_store.log(
            event_type=EventType.USER_PASSWORD_RESET,
            entity_type=EntityKind.ACCOUNT.value,
            entity_id=user_id,
            user_id=actor.user_id,
            payload={"generated": new_password is None},
            ip_address=ip_address,
        )
        return password

    async def delete_account(
        self,
        actor: Optional[Session],
        user_id: uuid.UUID,
        ip_address: Optional[str] = None,
    ) -> None:
        """Remove a teacher or student account with its role, profile and tokens."""
        actor = authorize(actor, Operation.MANAGE_ACCOUNT, EntityKind.ACCOUNT, entity_id=user_id)
        if actor.user_id == user_id:
            raise ValidationError("Cannot delete your own account", field="user_id")

        account = await self._require(user_id)
        if account.role not in MANAGED_ROLES:
            raise ValidationError("Only teacher and student accounts can be deleted", field="user_id")

        await self._delete_user(user_id)
        await self.event_store.log(
            event_type=EventType.USER_DELETED,
            entity_type=EntityKind.ACCOUNT.value,
            entity_id=user_id,
            user_id=actor.user_id,
            payload={"email": account.email, "role": account.role},
            ip_address=ip_address,
        )
        logger.info("Account deleted", extra={"user_id": str(user_id), "actor_id": str(actor.user_id)})

    def _check_profile_fields(self, fields: Dict[str, Any]) -> None:
        unknown = set(fields) - PROFILE_FIELDS
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(f"Unknown profile field '{field}'", field=field)

    @store_call
    async def _update_profile_row(self, user_id: uuid.UUID, values: Dict[str, Any]) -> None:
        await self.session.execute(
            update(Profile)
            .where(Profile.user_id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    @store_call
    async def _update_password(self, user_id: uuid.UUID, password_hash: str) -> None:
        await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(password_hash=password_hash)
            .execution_options(synchronize_session=False)
        )

    @store_call
    async def _delete_user(self, user_id: uuid.UUID) -> None:
        # Role, profile, tokens and authored papers go with the user via ON DELETE CASCADE
        await self.session.execute(delete(User).where(User.id == user_id))
