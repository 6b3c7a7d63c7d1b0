"""
Authentication endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Request, status

from portal.api.deps import CurrentSession, DbSession, OptionalSession, get_client_ip
from portal.kernel.identity.identity_service import IdentityService
from portal.schemas.auth import (
    LoginRequest,
    LogoutRequest,
    RefreshTokenRequest,
    RegisterRequest,
    SessionResponse,
    TokenResponse,
)
from portal.schemas.common import SuccessResponse

router = APIRouter()


def _token_response(session, token_pair) -> TokenResponse:
    return TokenResponse(
        access_token=token_pair.access_token,
        refresh_token=token_pair.refresh_token,
        token_type=token_pair.token_type,
        expires_in=token_pair.expires_in,
        user=SessionResponse.from_session(session),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    data: RegisterRequest,
    db: DbSession,
    session: OptionalSession,
):
    """
    Register a new account and sign it in.

    Visitors may register as student or teacher; a signed-in admin may
    register any role.
    """
    identity_service = IdentityService(db)
    ip_address = get_client_ip(request)

    await identity_service.sign_up(
        email=data.email,
        password=data.password,
        display_name=data.full_name,
        role=data.role,
        created_by=session,
        profile_fields=data.profile_fields(),
        ip_address=ip_address,
    )
    new_session, token_pair = await identity_service.sign_in(
        data.email,
        data.password,
        ip_address=ip_address,
    )
    return _token_response(new_session, token_pair)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: Request,
    data: LoginRequest,
    db: DbSession,
):
    """Authenticate and return tokens."""
    session, token_pair = await IdentityService(db).sign_in(
        data.email,
        data.password,
        ip_address=get_client_ip(request),
    )
    return _token_response(session, token_pair)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: Request,
    data: RefreshTokenRequest,
    db: DbSession,
):
    """
    Refresh access token using refresh token.

    The presented refresh token is revoked and a new pair issued.
    """
    session, token_pair = await IdentityService(db).refresh(
        data.refresh_token,
        ip_address=get_client_ip(request),
    )
    return _token_response(session, token_pair)


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    request: Request,
    session: CurrentSession,
    db: DbSession,
    data: Optional[LogoutRequest] = None,
):
    """
    Revoke refresh tokens.

    With a refresh_token only that one is revoked; otherwise all of them.
    """
    await IdentityService(db).sign_out(
        session.user_id,
        refresh_token=data.refresh_token if data else None,
        ip_address=get_client_ip(request),
    )
    return SuccessResponse(message="Logged out successfully")


@router.get("/me", response_model=SessionResponse)
async def get_current_account(session: CurrentSession):
    """The signed-in account, as the store sees it right now."""
    return SessionResponse.from_session(session)
