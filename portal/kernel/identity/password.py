"""
Password hashing utilities using bcrypt.
"""

import secrets
import string

import bcrypt

BCRYPT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Password hashing service."""

    rounds = BCRYPT_ROUNDS

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]

    @classmethod
    def hash(cls, password: str) -> str:
        """Hash a password, returning the bcrypt string for storage."""
        salt = bcrypt.gensalt(rounds=cls.rounds)
        return bcrypt.hashpw(cls._encode(password), salt).decode("utf-8")

    @classmethod
    def verify(cls, plain_password: str, hashed_password: str) -> bool:
        """Check a password against a stored hash. Malformed hashes never match."""
        try:
            return bcrypt.checkpw(cls._encode(plain_password), hashed_password.encode("utf-8"))
        except ValueError:
            return False


def generate_temporary_password(length: int = 14) -> str:
    """Random password satisfying the registration rules (upper, lower, digit)."""
    alphabet = string.ascii_letters + string.digits
    while True:
        candidate = "".join(secrets.choice(alphabet) for _ in range(length))
        if (
            any(c.isupper() for c in candidate)
            and any(c.islower() for c in candidate)
            and any(c.isdigit() for c in candidate)
        ):
            return candidate


def hash_password(password: str) -> str:
    """Hash a password."""
    return PasswordHasher.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password."""
    return PasswordHasher.verify(plain_password, hashed_password)
