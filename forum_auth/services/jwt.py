"""Session token service."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from forum_auth.config import Settings
from forum_auth.errors import UnauthenticatedError


@dataclass(frozen=True)
class Identity:
    """Who a verified session token belongs to."""

    user_id: int
    username: str


class JWTService:
    """Signs and verifies stateless session tokens."""

    def __init__(self, settings: Settings) -> None:
        self.secret_key = settings.JWT_SECRET
        self.algorithm = settings.JWT_ALGORITHM
        self.expire_days = settings.JWT_EXPIRE_DAYS

    def create_token(self, user_id: int, username: str) -> str:
        """Create a session token for the given user."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "username": username,
            "iat": now,
            "exp": now + timedelta(days=self.expire_days),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_session(self, token: str) -> Identity:
        """Verify signature and expiry. Raises UnauthenticatedError if either fails."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
            return Identity(user_id=int(payload["sub"]), username=str(payload["username"]))
        except (JWTError, KeyError, TypeError, ValueError):
            raise UnauthenticatedError("Invalid or expired token") from None
