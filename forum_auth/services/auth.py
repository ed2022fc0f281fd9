"""Authentication service."""

import logging
import re
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from forum_auth.config import Settings
from forum_auth.errors import (
    AuthenticationError,
    ConflictError,
    InternalError,
    InvalidTokenError,
    ValidationError,
)
from forum_auth.models.user import User, utcnow
from forum_auth.services.jwt import JWTService
from forum_auth.services.notifier import LoggingResetNotifier, ResetNotifier
from forum_auth.services.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from forum_auth.services.reset_tokens import issue_reset_token

logger = logging.getLogger("forum_auth")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8

MISSING_FIELDS = "Please provide all required fields"
INVALID_EMAIL = "Please provide a valid email address"
RESET_REQUESTED = "If an account with that email exists, a password reset link has been sent."


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def _check_email(email: str) -> str:
    normalized = normalize_email(email)
    if not is_valid_email(normalized):
        raise ValidationError(INVALID_EMAIL)
    return normalized


@dataclass
class ForgotPasswordResult:
    """Outcome of a forgot-password request.

    ``reset_token`` is only filled in when the development echo is enabled.
    """

    message: str
    reset_token: str | None = None


class AuthService:
    """Registration, login and password reset against the users table."""

    def __init__(
        self,
        settings: Settings,
        hasher: PasswordHasher | None = None,
        jwt_service: JWTService | None = None,
        notifier: ResetNotifier | None = None,
    ) -> None:
        self.settings = settings
        self.hasher = hasher or PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
        self.jwt_service = jwt_service or JWTService(settings)
        self.notifier = notifier or LoggingResetNotifier(settings.RESET_URL_BASE)
        self.reset_token_lifetime = timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)

    def register(
        self,
        db: Session,
        username: str | None,
        first_name: str | None,
        last_name: str | None,
        email: str | None,
        password: str | None,
    ) -> User:
        """Create a new account. Raises ValidationError or ConflictError."""
        if any(_blank(v) for v in (username, first_name, last_name, email)) or not password:
            raise ValidationError(MISSING_FIELDS)
        email = _check_email(email)
        _check_password(password)
        username = username.strip()

        try:
            existing = (
                db.query(User.id).filter(or_(User.email == email, User.username == username)).first()
            )
            if existing:
                raise ConflictError()

            user = User(
                username=username,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                email=email,
                password_hash=self.hasher.hash(password),
            )
            db.add(user)
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same identity.
            db.rollback()
            raise ConflictError() from None
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Registration failed for %s", email)
            raise InternalError() from None

        db.refresh(user)
        logger.info("Registered user %s (id=%s)", user.username, user.id)
        return user

    def login(self, db: Session, email: str | None, password: str | None) -> str:
        """Check credentials and return a signed session token."""
        if _blank(email) or not password:
            raise ValidationError(MISSING_FIELDS)
        email = _check_email(email)

        try:
            user = db.query(User).filter(User.email == email).first()
        except SQLAlchemyError:
            logger.exception("Login lookup failed")
            raise InternalError() from None

        if not user or not self.hasher.verify(password, user.password_hash):
            logger.info("Failed login for %s", email)
            raise AuthenticationError()

        return self.jwt_service.create_token(user_id=user.id, username=user.username)

    def forgot_password(self, db: Session, email: str | None) -> ForgotPasswordResult:
        """Issue a reset token if the email is registered.

        The result is the same whether or not the account exists, apart from
        the development-only token echo.
        """
        if _blank(email):
            raise ValidationError("Please provide an email address")
        email = _check_email(email)

        try:
            user = db.query(User).filter(User.email == email).first()
            if not user:
                return ForgotPasswordResult(message=RESET_REQUESTED)

            token = issue_reset_token(self.reset_token_lifetime)
            user.set_reset_token(token.value, token.expires_at)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Could not store reset token for %s", email)
            raise InternalError() from None

        self.notifier.send_reset_link(user.email, token.value)
        logger.info("Issued password reset token for user id=%s", user.id)

        if self.settings.expose_reset_token:
            return ForgotPasswordResult(message=RESET_REQUESTED, reset_token=token.value)
        return ForgotPasswordResult(message=RESET_REQUESTED)

    def reset_password(self, db: Session, token: str | None, new_password: str | None) -> None:
        """Consume a reset token and set a new password.

        Wrong, already-used and expired tokens all raise the same InvalidTokenError.
        """
        if not token or not new_password:
            raise ValidationError("Please provide reset token and new password")
        _check_password(new_password)

        try:
            user_id = (
                db.query(User.id)
                .filter(User.reset_token == token, User.reset_token_expires > utcnow())
                .scalar()
            )
            if user_id is None:
                raise InvalidTokenError()

            password_hash = self.hasher.hash(new_password)
            # Token match is re-checked in the UPDATE so a concurrent reset can only win once.
            consumed = (
                db.query(User)
                .filter(
                    User.id == user_id,
                    User.reset_token == token,
                    User.reset_token_expires > utcnow(),
                )
                .update(
                    {
                        User.password_hash: password_hash,
                        User.reset_token: None,
                        User.reset_token_expires: None,
                    },
                    synchronize_session="fetch",
                )
            )
            if consumed != 1:
                db.rollback()
                raise InvalidTokenError()
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Password reset failed")
            raise InternalError() from None

        logger.info("Password reset completed for user id=%s", user_id)
