"""
Authentication service: password hashing and bearer token issuance/verification.

Tokens are HS256 JWTs carrying ``{"id": <player id>, "role": <role>}`` and an
``exp`` claim. The signing secret must be supplied through configuration;
there is no built-in fallback.
"""

import os
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict

import bcrypt
import jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60

# bcrypt silently truncates input at 72 bytes; truncate explicitly
MAX_BCRYPT_LEN = 72


@dataclass(frozen=True)
class Principal:
    """The authenticated identity attached to a request."""

    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    password_bytes = password.encode("utf-8")[:MAX_BCRYPT_LEN]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    password_bytes = password.encode("utf-8")[:MAX_BCRYPT_LEN]
    try:
        return bcrypt.checkpw(password_bytes, password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


class TokenService:
    """Issues and verifies signed, time-limited bearer tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = ALGORITHM,
        expires_delta: timedelta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    ):
        if not secret_key:
            raise ValueError("A token signing secret is required")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = expires_delta

    def create_access_token(
        self, player_id: int, role: str, expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Create a signed access token for a player.

        Args:
            player_id: Player ID to embed
            role: Player role to embed
            expires_delta: Optional lifetime override (defaults to the service lifetime)

        Returns:
            Encoded JWT string
        """
        expire = datetime.now(timezone.utc) + (expires_delta or self.expires_delta)
        payload = {"id": player_id, "role": role, "exp": expire}
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Optional[Dict]:
        """
        Verify signature and expiry.

        Returns:
            Decoded payload, or None if the token is invalid or expired
        """
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.debug("Rejected expired token")
            return None
        except jwt.InvalidTokenError:
            return None

    def principal_from_token(self, token: str) -> Optional[Principal]:
        """Verify a token and turn its payload into a Principal (None on any failure)."""
        payload = self.verify_token(token)
        if payload is None:
            return None
        player_id = payload.get("id")
        role = payload.get("role")
        if not isinstance(player_id, int) or isinstance(player_id, bool) or not isinstance(role, str):
            return None
        return Principal(id=player_id, role=role)


_token_service: Optional[TokenService] = None


def get_token_service() -> TokenService:
    """
    Get the process-wide token service, building it from the environment on first use.

    Raises:
        RuntimeError: If JWT_SECRET_KEY is not configured
    """
    global _token_service
    if _token_service is None:
        secret_key = os.getenv("JWT_SECRET_KEY")
        if not secret_key:
            raise RuntimeError("JWT_SECRET_KEY is not set. Refusing to issue or verify tokens.")
        minutes = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(ACCESS_TOKEN_EXPIRE_MINUTES)))
        _token_service = TokenService(secret_key, expires_delta=timedelta(minutes=minutes))
    return _token_service


def reset_token_service() -> None:
    """Drop the cached token service so the next call re-reads configuration."""
    global _token_service
    _token_service = None
