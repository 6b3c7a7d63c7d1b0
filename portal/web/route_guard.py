"""
Route guard for the three role portals.

evaluate_guard() is pure: given the session (or None) and the role a route
requires, it says whether to render or where to send the visitor. RequireRole
runs it as a FastAPI dependency, before the route handler, on every request.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from portal.api.deps import OptionalSession
from portal.kernel.identity.session import Session, effective_session
from portal.kernel.models.content import EntityKind
from portal.kernel.models.user import UserRole
from portal.kernel.permissions.access_control import PORTAL_OPERATIONS, evaluate
from portal.logging_config import get_logger

logger = get_logger(__name__)

LOGIN_PATHS = {
    UserRole.ADMIN: "/admin/login",
    UserRole.TEACHER: "/teacher/login",
    UserRole.STUDENT: "/student/login",
}

DASHBOARD_PATHS = {
    UserRole.ADMIN: "/admin/dashboard",
    UserRole.TEACHER: "/teacher/dashboard",
    UserRole.STUDENT: "/student/dashboard",
}


def login_path(role: UserRole) -> str:
    return LOGIN_PATHS[UserRole(role)]


def dashboard_path(role: UserRole) -> str:
    return DASHBOARD_PATHS[UserRole(role)]


@dataclass(frozen=True)
class GuardDecision:
    """Either render, or redirect to redirect_to."""

    render: bool
    redirect_to: Optional[str] = None


def evaluate_guard(session: Optional[Session], required_role: UserRole) -> GuardDecision:
    """
    Decide whether a portal route may render.

    - no session, or a deactivated account: the route's own portal login
    - the evaluator denies entry to this portal: the actor's own dashboard
    """
    required_role = UserRole(required_role)
    actor = effective_session(session)
    if actor is None:
        return GuardDecision(render=False, redirect_to=login_path(required_role))
    if not evaluate(actor, PORTAL_OPERATIONS[required_role], EntityKind.ACCOUNT).allowed:
        return GuardDecision(render=False, redirect_to=dashboard_path(actor.role))
    return GuardDecision(render=True)


class GuardRedirect(Exception):
    """Raised by RequireRole; rendered as 303 See Other by the app."""

    def __init__(self, location: str):
        super().__init__(location)
        self.location = location


class RequireRole:
    """
    Dependency guarding a portal route.

    Usage:
        @router.get("/admin/dashboard")
        async def admin_dashboard(session: Annotated[Session, Depends(RequireRole(UserRole.ADMIN))]):
            ...
    """

    def __init__(self, required_role: UserRole):
        self.required_role = UserRole(required_role)

    async def __call__(self, request: Request, session: OptionalSession) -> Session:
        decision = evaluate_guard(session, self.required_role)
        if not decision.render:
            logger.info(
                "Guard redirect",
                extra={
                    "path": request.url.path,
                    "required_role": self.required_role.value,
                    "redirect_to": decision.redirect_to,
                    "actor_id": str(session.user_id) if session else None,
                },
            )
            raise GuardRedirect(decision.redirect_to)
        return session
