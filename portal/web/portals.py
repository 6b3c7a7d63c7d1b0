"""
Admin, teacher and student portal routes.

Login pages issue the session cookie; dashboards are guarded by RequireRole
and return the data their page shows.
"""

from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from portal.api.deps import DbSession, OptionalSession, get_client_ip
from portal.config import get_settings
from portal.kernel.content.content_service import ContentService
from portal.kernel.identity.identity_service import IdentityService
from portal.kernel.identity.session import Session, effective_session
from portal.kernel.models.content import ContentStatus, EntityKind
from portal.kernel.models.user import UserRole
from portal.kernel.permissions.access_control import CONTENT_KINDS, Operation, evaluate, granted_operations
from portal.schemas.auth import LoginRequest, SessionResponse
from portal.web.route_guard import RequireRole, dashboard_path, login_path

router = APIRouter()

AdminPortal = Annotated[Session, Depends(RequireRole(UserRole.ADMIN))]
TeacherPortal = Annotated[Session, Depends(RequireRole(UserRole.TEACHER))]
StudentPortal = Annotated[Session, Depends(RequireRole(UserRole.STUDENT))]


def _redirect(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=status.HTTP_303_SEE_OTHER)


def _capabilities(session: Session) -> Dict[str, list]:
    """Operations the role holds per content kind, for building the page menu."""
    return {
        kind.value: sorted(op.value for op in granted_operations(session.role, kind))
        for kind in sorted(CONTENT_KINDS, key=lambda k: k.value)
    }


def _login_page(portal: UserRole, session) -> Any:
    actor = effective_session(session)
    if actor is not None:
        return _redirect(dashboard_path(actor.role))
    return {"portal": portal.value, "login_action": login_path(portal)}


async def _sign_in(request: Request, data: LoginRequest, db) -> RedirectResponse:
    settings = get_settings()
    session, tokens = await IdentityService(db).sign_in(
        data.email,
        data.password,
        ip_address=get_client_ip(request),
    )
    # Whatever portal was used, the account lands on its own dashboard
    response = _redirect(dashboard_path(session.role))
    response.set_cookie(
        settings.session_cookie_name,
        tokens.access_token,
        max_age=tokens.expires_in,
        httponly=True,
        samesite="lax",
        secure=settings.environment == "production",
    )
    return response


@router.get("/admin/login")
async def admin_login_page(session: OptionalSession):
    return _login_page(UserRole.ADMIN, session)


@router.get("/teacher/login")
async def teacher_login_page(session: OptionalSession):
    return _login_page(UserRole.TEACHER, session)


@router.get("/student/login")
async def student_login_page(session: OptionalSession):
    return _login_page(UserRole.STUDENT, session)


@router.post("/admin/login")
async def admin_login(request: Request, data: LoginRequest, db: DbSession):
    return await _sign_in(request, data, db)


@router.post("/teacher/login")
async def teacher_login(request: Request, data: LoginRequest, db: DbSession):
    return await _sign_in(request, data, db)


@router.post("/student/login")
async def student_login(request: Request, data: LoginRequest, db: DbSession):
    return await _sign_in(request, data, db)


@router.post("/logout")
async def logout(request: Request, session: OptionalSession, db: DbSession):
    """Revoke the user's refresh tokens and clear the cookie."""
    location = "/"
    if session is not None:
        await IdentityService(db).sign_out(session.user_id, ip_address=get_client_ip(request))
        location = login_path(session.role)
    response = _redirect(location)
    response.delete_cookie(get_settings().session_cookie_name)
    return response


@router.get("/admin/dashboard")
async def admin_dashboard(session: AdminPortal, db: DbSession) -> Dict[str, Any]:
    """Review queue sizes per content kind."""
    service = ContentService(db)
    pending = {}
    for kind in sorted(CONTENT_KINDS, key=lambda k: k.value):
        _, total = await service.list_private(session, kind, status=ContentStatus.PENDING, page_size=1)
        pending[kind.value] = total
    return {
        "user": SessionResponse.from_session(session).model_dump(mode="json"),
        "pending_review": pending,
        "capabilities": _capabilities(session),
    }


@router.get("/teacher/dashboard")
async def teacher_dashboard(session: TeacherPortal, db: DbSession) -> Dict[str, Any]:
    """The teacher's own research papers by status."""
    service = ContentService(db)
    papers = {}
    for content_status in ContentStatus:
        _, total = await service.list_private(
            session, EntityKind.RESEARCH_PAPER, status=content_status, page_size=1,
        )
        papers[content_status.value] = total
    return {
        "user": SessionResponse.from_session(session).model_dump(mode="json"),
        "research_papers": papers,
        "can_submit_papers": evaluate(session, Operation.CREATE, EntityKind.RESEARCH_PAPER).allowed,
        "capabilities": _capabilities(session),
    }


@router.get("/student/dashboard")
async def student_dashboard(session: StudentPortal, db: DbSession) -> Dict[str, Any]:
    """Latest public notices."""
    notices, total = await ContentService(db).list_public(EntityKind.NOTICE, page_size=5)
    return {
        "user": SessionResponse.from_session(session).model_dump(mode="json"),
        "latest_notices": [{"id": str(n.id), "title": n.title} for n in notices],
        "notice_count": total,
        "capabilities": _capabilities(session),
    }
