"""
Identity service: sign-up, sign-in, session lookup and token rotation.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.config import get_settings
from portal.kernel.datastore import store_call
from portal.kernel.errors import AuthenticationError, AuthorizationError, ConflictError
from portal.kernel.events.event_store import EventStore
from portal.kernel.identity.jwt import JWTManager, TokenPair
from portal.kernel.identity.password import hash_password, verify_password
from portal.kernel.identity.role_store import RoleStore
from portal.kernel.identity.session import Session, effective_session
from portal.kernel.models.base import enum_value
from portal.kernel.models.content import EntityKind
from portal.kernel.models.event_log import EventType
from portal.kernel.models.profile import Profile
from portal.kernel.models.user import RefreshToken, RoleAssignment, User, UserRole
from portal.logging_config import get_logger

logger = get_logger(__name__)

# Roles a visitor may pick for themselves
SELF_SERVICE_ROLES = frozenset({UserRole.STUDENT, UserRole.TEACHER})


class IdentityService:
    """
    Service for user identity operations.

    Handles registration, authentication, session lookup and refresh tokens.
    """

    def __init__(self, session: AsyncSession, jwt_manager: Optional[JWTManager] = None):
        self.session = session
        self.jwt_manager = jwt_manager or JWTManager()
        self.role_store = RoleStore(session)
        self.event_store = EventStore(session)

    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: str,
        role: UserRole = UserRole.STUDENT,
        *,
        created_by: Optional[Session] = None,
        profile_fields: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> User:
        """
        Create a user with exactly one role and a profile.

        Visitors may register as students, or as teachers when self-registration
        is enabled; such teachers start unverified. Accounts created by an admin
        (created_by) may carry any role and start verified.

        Raises:
            AuthorizationError: the requested role is not self-service
            ConflictError: email already registered
        """
        settings = get_settings()
        role = UserRole(role)
        creator = effective_session(created_by)
        by_admin = creator is not None and creator.is_admin

        if not by_admin:
            if role not in SELF_SERVICE_ROLES:
                raise AuthorizationError(f"Cannot self-register as {role.value}")
            if role == UserRole.TEACHER and not settings.allow_teacher_self_registration:
                raise AuthorizationError("Teacher self-registration is disabled")

        normalized = email.lower().strip()
        if await self.get_user_by_email(normalized):
            raise ConflictError("Email already registered")

        user = User(email=normalized, password_hash=hash_password(password))
        self.session.add(user)
        await self._flush_unique(user)

        await self.role_store.assign_initial(user.id, role)

        profile = Profile(
            user_id=user.id,
            full_name=display_name.strip(),
            email=normalized,
            is_active=True,
            is_verified=by_admin,
            **{k: v for k, v in (profile_fields or {}).items() if k not in ("full_name", "email")},
        )
        self.session.add(profile)

        await self.event_store.log(
            event_type=EventType.USER_REGISTERED,
            entity_type=EntityKind.ACCOUNT.value,
            entity_id=user.id,
            user_id=creator.user_id if creator else user.id,
            payload={"email": normalized, "role": role, "by_admin": by_admin},
            ip_address=ip_address,
        )
        await self._flush()
        logger.info("Account created", extra={"user_id": str(user.id), "role": role.value})
        return user

    async def sign_in(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
    ) -> tuple[Session, TokenPair]:
        """
        Authenticate with email and password.

        Raises:
            AuthenticationError: unknown email, wrong password, missing role or deactivated account
        """
        user = await self.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")

        session = await self.load_session(user.id)
        if session is None:
            logger.warning("Sign-in for account without role", extra={"user_id": str(user.id)})
            raise AuthenticationError("Invalid email or password")
        if not session.is_active:
            raise AuthenticationError("Account is deactivated")

        user.last_login = datetime.now(timezone.utc)
        token_pair = await self._issue_tokens(user.id)

        await self.event_store.log(
            event_type=EventType.USER_LOGGED_IN,
            entity_type=EntityKind.ACCOUNT.value,
            entity_id=user.id,
            user_id=user.id,
            payload={"method": "password"},
            ip_address=ip_address,
        )
        await self._flush()
        return session, token_pair

    async def current_session(self, access_token: Optional[str]) -> Optional[Session]:
        """
        Resolve an access token to a fresh Session, or None.

        Role and account flags are read from the store on every call.
        """
        if not access_token:
            return None
        payload = self.jwt_manager.verify_access_token(access_token)
        if not payload:
            return None
        try:
            user_id = uuid.UUID(payload.sub)
        except ValueError:
            return None
        return await self.load_session(user_id)

    @store_call
    async def load_session(self, user_id: uuid.UUID) -> Optional[Session]:
        """Build a Session from the identity, role assignment and profile rows."""
        query = (
            select(User, RoleAssignment, Profile)
            .join(RoleAssignment, RoleAssignment.user_id == User.id)
            .outerjoin(Profile, Profile.user_id == User.id)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        row = (await self.session.execute(query)).one_or_none()
        if row is None:
            return None

        user, assignment, profile = row
        return Session(
            user_id=user.id,
            email=user.email,
            role=UserRole(enum_value(assignment.role)),
            display_name=profile.full_name if profile else user.email,
            # No profile means the account was never fully provisioned
            is_active=bool(profile and profile.is_active),
            is_verified=bool(profile and profile.is_verified),
        )

    async def refresh(
        self,
        refresh_token: str,
        ip_address: Optional[str] = None,
    ) -> tuple[Session, TokenPair]:
        """
        Rotate a refresh token.

        Raises:
            AuthenticationError: token invalid, revoked, expired, or account deactivated
        """
        payload = self.jwt_manager.verify_refresh_token(refresh_token)
        if not payload:
            raise AuthenticationError("Invalid or expired refresh token")

        record = await self._find_refresh_token(refresh_token)
        if record is None:
            raise AuthenticationError("Invalid or expired refresh token")

        session = await self.load_session(uuid.UUID(payload.sub))
        if session is None or not session.is_active:
            raise AuthenticationError("Account is deactivated")

        record.revoked = True
        token_pair = await self._issue_tokens(session.user_id)
        await self._flush()
        return session, token_pair

    async def sign_out(
        self,
        user_id: uuid.UUID,
        refresh_token: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> None:
        """Revoke one refresh token, or all of the user's tokens when none is given."""
        await self.revoke_tokens(user_id, refresh_token)
        await self.event_store.log(
            event_type=EventType.USER_LOGGED_OUT,
            entity_type=EntityKind.ACCOUNT.value,
            entity_id=user_id,
            user_id=user_id,
            payload={"revoke_all": refresh_token is None},
            ip_address=ip_address,
        )
        await self._flush()

    @store_call
    async def revoke_tokens(self, user_id: uuid.UUID, refresh_token: Optional[str] = None) -> None:
        conditions = [RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False)]
        if refresh_token is not None:
            conditions.append(RefreshToken.token_hash == JWTManager.hash_token(refresh_token))
        result = await self.session.execute(select(RefreshToken).where(and_(*conditions)))
        for token in result.scalars().all():
            token.revoked = True

    @store_call
    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(
            select(User)
            .where(User.email == email.lower().strip())
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _issue_tokens(self, user_id: uuid.UUID) -> TokenPair:
        token_pair, refresh_expires = self.jwt_manager.create_token_pair(user_id)
        self.session.add(RefreshToken(
            user_id=user_id,
            token_hash=JWTManager.hash_token(token_pair.refresh_token),
            expires_at=refresh_expires,
        ))
        return token_pair

    @store_call
    async def _find_refresh_token(self, refresh_token: str) -> Optional[RefreshToken]:
        query = select(RefreshToken).where(
            and_(
                RefreshToken.token_hash == JWTManager.hash_token(refresh_token),
                RefreshToken.revoked.is_(False),
                RefreshToken.expires_at > datetime.now(timezone.utc),
            )
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    @store_call
    async def _flush_unique(self, user: User) -> None:
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError("Email already registered") from exc

    @store_call
    async def _flush(self) -> None:
        await self.session.flush()
