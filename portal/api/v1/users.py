"""
Account administration endpoints (admin only).
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Query, Request, status

from portal.api.deps import CurrentSession, DbSession, get_client_ip
from portal.kernel.identity.account_service import AccountService
from portal.kernel.models.user import UserRole
from portal.schemas.common import PaginatedResponse, SuccessResponse
from portal.schemas.users import (
    AccountCreate,
    AccountCreatedResponse,
    AccountResponse,
    ActivationRequest,
    PasswordResetRequest,
    PasswordResetResponse,
    ProfileFields,
    RoleChangeRequest,
)

router = APIRouter()


@router.get("", response_model=PaginatedResponse[AccountResponse])
async def list_accounts(
    session: CurrentSession,
    db: DbSession,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    is_verified: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    accounts, total = await AccountService(db).list_accounts(
        session,
        role=role,
        is_active=is_active,
        is_verified=is_verified,
        search=search,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse.create(
        items=[AccountResponse.from_view(a) for a in accounts],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=AccountCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_account(request: Request, data: AccountCreate, session: CurrentSession, db: DbSession):
    """
    Create an active, verified account.

    When no password is given one is generated and returned once, in
    temporary_password.
    """
    account, generated = await AccountService(db).create_account(
        session,
        data.email,
        data.full_name,
        role=data.role,
        password=data.password,
        profile_fields=data.profile_fields(),
        ip_address=get_client_ip(request),
    )
    return AccountCreatedResponse(
        **AccountResponse.from_view(account).model_dump(),
        temporary_password=generated,
    )


@router.get("/{user_id}", response_model=AccountResponse)
async def get_account(user_id: uuid.UUID, session: CurrentSession, db: DbSession):
    account = await AccountService(db).get_account(session, user_id)
    return AccountResponse.from_view(account)


@router.patch("/{user_id}", response_model=AccountResponse)
async def update_account_profile(
    request: Request,
    user_id: uuid.UUID,
    data: ProfileFields,
    session: CurrentSession,
    db: DbSession,
):
    account = await AccountService(db).update_profile(
        session, user_id, data.model_dump(exclude_unset=True), ip_address=get_client_ip(request),
    )
    return AccountResponse.from_view(account)


@router.put("/{user_id}/role", response_model=AccountResponse)
async def change_role(
    request: Request,
    user_id: uuid.UUID,
    data: RoleChangeRequest,
    session: CurrentSession,
    db: DbSession,
):
    """Replace the account's single role."""
    account = await AccountService(db).change_role(
        session, user_id, data.role, ip_address=get_client_ip(request),
    )
    return AccountResponse.from_view(account)


@router.put("/{user_id}/activation", response_model=AccountResponse)
async def set_activation(
    request: Request,
    user_id: uuid.UUID,
    data: ActivationRequest,
    session: CurrentSession,
    db: DbSession,
):
    account = await AccountService(db).set_active(
        session, user_id, data.is_active, ip_address=get_client_ip(request),
    )
    return AccountResponse.from_view(account)


@router.post("/{user_id}/verify", response_model=AccountResponse)
async def verify_teacher(request: Request, user_id: uuid.UUID, session: CurrentSession, db: DbSession):
    account = await AccountService(db).verify_teacher(session, user_id, ip_address=get_client_ip(request))
    return AccountResponse.from_view(account)


@router.post("/{user_id}/reset-password", response_model=PasswordResetResponse)
async def reset_password(
    request: Request,
    user_id: uuid.UUID,
    session: CurrentSession,
    db: DbSession,
    data: Optional[PasswordResetRequest] = None,
):
    password = await AccountService(db).reset_password(
        session,
        user_id,
        new_password=data.new_password if data else None,
        ip_address=get_client_ip(request),
    )
    return PasswordResetResponse(user_id=user_id, password=password)


@router.delete("/{user_id}", response_model=SuccessResponse)
async def delete_account(request: Request, user_id: uuid.UUID, session: CurrentSession, db: DbSession):
    await AccountService(db).delete_account(session, user_id, ip_address=get_client_ip(request))
    return SuccessResponse(message="Account deleted")
