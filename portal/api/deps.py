"""
FastAPI dependencies for database sessions and the per-request Session.

The Session is rebuilt from the store on every request, from either a bearer
token (API clients) or the session cookie (portal pages).
"""

from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from portal.config import get_settings
from portal.database import get_db
from portal.kernel.identity.identity_service import IdentityService
from portal.kernel.identity.session import Session
from portal.kernel.permissions.access_control import require_session


# Security scheme
security = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """Bearer token if present, otherwise the session cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(get_settings().session_cookie_name)


async def get_session_optional(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: DbSession,
) -> Optional[Session]:
    """
    Current session, or None.

    A deactivated account still yields its Session (is_active=False) so the
    evaluator can tell it apart from a missing one.
    """
    token = get_access_token(request, credentials)
    return await IdentityService(db).current_session(token)


OptionalSession = Annotated[Optional[Session], Depends(get_session_optional)]


async def get_current_session(session: OptionalSession) -> Session:
    """Usable session or AuthenticationError (401)."""
    return require_session(session)


CurrentSession = Annotated[Session, Depends(get_current_session)]


def get_request_id(request: Request) -> Optional[str]:
    """Get request correlation ID (set by RequestIdMiddleware)."""
    return getattr(request.state, "request_id", None)


def get_client_ip(request: Request) -> Optional[str]:
    """
    Client IP of the request.

    X-Forwarded-For is only used when the connecting peer is one of the
    configured trusted proxies.
    """
    peer = request.client.host if request.client else None
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and peer in get_settings().trusted_proxies:
        return forwarded.split(",")[0].strip()
    return peer
