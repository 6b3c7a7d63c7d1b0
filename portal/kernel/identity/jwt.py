"""
JWT token management for portal sessions.

Tokens identify the user only. Role and account flags are looked up on every
request, so a token never grants more than the Role Store currently says.
"""

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from portal.config import get_settings


class TokenPayload(BaseModel):
    """Decoded access or refresh token."""

    sub: str  # User ID
    exp: datetime
    iat: datetime
    jti: str
    type: str


class TokenPair(BaseModel):
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until access token expires


class JWTManager:
    """
    JWT token creation and verification.

    Handles access tokens (short-lived) and refresh tokens (long-lived).
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
        refresh_token_expire_days: Optional[int] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.access_token_expire_minutes = access_token_expire_minutes or settings.access_token_expire_minutes
        self.refresh_token_expire_days = refresh_token_expire_days or settings.refresh_token_expire_days

    def _encode(self, user_id: uuid.UUID, token_type: str, lifetime: timedelta) -> tuple[str, datetime]:
        now = datetime.now(timezone.utc)
        expire = now + lifetime
        payload = {
            "sub": str(user_id),
            "exp": expire,
            "iat": now,
            "jti": str(uuid.uuid4()),
            "type": token_type,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm), expire

    def create_access_token(
        self,
        user_id: uuid.UUID,
        expires_delta: Optional[timedelta] = None,
    ) -> tuple[str, datetime]:
        """Create an access token. Returns (token, expiration)."""
        return self._encode(
            user_id,
            "access",
            expires_delta or timedelta(minutes=self.access_token_expire_minutes),
        )

    def create_refresh_token(
        self,
        user_id: uuid.UUID,
        expires_delta: Optional[timedelta] = None,
    ) -> tuple[str, datetime]:
        """Create a refresh token. Returns (token, expiration)."""
        return self._encode(
            user_id,
            "refresh",
            expires_delta or timedelta(days=self.refresh_token_expire_days),
        )

    def create_token_pair(self, user_id: uuid.UUID) -> tuple[TokenPair, datetime]:
        """
        Create both access and refresh tokens.

        Returns:
            Tuple of (TokenPair, refresh_token_expiration)
        """
        access_token, access_exp = self.create_access_token(user_id)
        refresh_token, refresh_exp = self.create_refresh_token(user_id)
        expires_in = int((access_exp - datetime.now(timezone.utc)).total_seconds())
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
        ), refresh_exp

    def _verify(self, token: str, expected_type: str) -> Optional[TokenPayload]:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None

        if payload.get("type") != expected_type:
            return None

        return TokenPayload(
            sub=payload["sub"],
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            jti=payload["jti"],
            type=payload["type"],
        )

    def verify_access_token(self, token: str) -> Optional[TokenPayload]:
        """Decode an access token; None if invalid, expired or of the wrong type."""
        return self._verify(token, "access")

    def verify_refresh_token(self, token: str) -> Optional[TokenPayload]:
        """Decode a refresh token; None if invalid, expired or of the wrong type."""
        return self._verify(token, "refresh")

    @staticmethod
    def hash_token(token: str) -> str:
        """SHA-256 of a token, used to store refresh tokens."""
        return hashlib.sha256(token.encode()).hexdigest()
