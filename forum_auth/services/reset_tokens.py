"""Password reset token issuing."""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from forum_auth.models.user import utcnow

RESET_TOKEN_BYTES = 32


@dataclass(frozen=True)
class ResetToken:
    value: str
    expires_at: datetime


def issue_reset_token(lifetime: timedelta, now: datetime | None = None) -> ResetToken:
    """Generate a random hex reset token that expires after ``lifetime``."""
    issued_at = now or utcnow()
    return ResetToken(value=secrets.token_hex(RESET_TOKEN_BYTES), expires_at=issued_at + lifetime)
