"""
Identity Core - credentials, tokens and the per-request session value.

IdentityService and RoleStore depend on the permission core, so they are
imported from their own modules rather than re-exported here.
"""

from portal.kernel.identity.password import PasswordHasher, hash_password, verify_password
from portal.kernel.identity.jwt import JWTManager, TokenPair, TokenPayload
from portal.kernel.identity.session import Session, effective_session

__all__ = [
    "PasswordHasher",
    "hash_password",
    "verify_password",
    "JWTManager",
    "TokenPair",
    "TokenPayload",
    "Session",
    "effective_session",
]
