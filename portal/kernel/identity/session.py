"""
The signed-in actor, as an explicit value passed to every decision.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from portal.kernel.models.user import UserRole


@dataclass(frozen=True)
class Session:
    """
    Who is making the request.

    Built fresh from the Role Store and Profile on every request; never cached
    across requests and never derived from token claims.
    """

    user_id: uuid.UUID
    email: str
    role: UserRole
    display_name: str = ""
    is_active: bool = True
    is_verified: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def effective_session(session: Optional[Session]) -> Optional[Session]:
    """A deactivated account counts as no session at all."""
    if session is None or not session.is_active:
        return None
    return session
