"""Tests for AuthService used directly against the database."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from forum_auth.errors import (
    AuthenticationError,
    ConflictError,
    InternalError,
    InvalidTokenError,
    ValidationError,
)
from forum_auth.models.user import User, utcnow
from forum_auth.services.auth import RESET_REQUESTED, AuthService, is_valid_email
from forum_auth.services.reset_tokens import issue_reset_token


class TestEmailShape:
    @pytest.mark.parametrize("email", ["a@x.com", "first.last@sub.example.org", "a+tag@x.io"])
    def test_valid(self, email: str):
        assert is_valid_email(email)

    @pytest.mark.parametrize("email", ["", "a", "a@x", "a@@x.com", "a @x.com", "a@x .com"])
    def test_invalid(self, email: str):
        assert not is_valid_email(email)


class TestRegister:
    def test_validation_happens_before_storage(self, auth_service: AuthService):
        db = MagicMock(spec=Session)
        with pytest.raises(ValidationError):
            auth_service.register(db, "u", "F", "L", "bad-email", "password1")
        db.query.assert_not_called()
        db.add.assert_not_called()

    def test_conflict_on_email(self, auth_service: AuthService, db_session: Session, test_user: dict):
        with pytest.raises(ConflictError):
            auth_service.register(db_session, "someone", "S", "O", "a@x.com", "password1")
        assert db_session.query(User).count() == 1

    def test_names_are_trimmed(self, auth_service: AuthService, db_session: Session):
        user = auth_service.register(db_session, " carol ", " Carol ", " Cole ", " Carol@X.com ", "password1")
        assert (user.username, user.first_name, user.last_name, user.email) == ("carol", "Carol", "Cole", "carol@x.com")

    def test_database_error_becomes_internal_error(self, auth_service: AuthService):
        db = MagicMock(spec=Session)
        db.query.return_value.filter.return_value.first.return_value = None
        db.commit.side_effect = OperationalError("INSERT", {}, Exception("disk full"))
        with pytest.raises(InternalError) as excinfo:
            auth_service.register(db, "dave", "Dave", "D", "dave@x.com", "password1")
        assert excinfo.value.message == "An unexpected error occurred."
        db.rollback.assert_called_once()


class TestLogin:
    def test_returns_verifiable_token(self, auth_service: AuthService, db_session: Session, test_user: dict):
        token = auth_service.login(db_session, "a@x.com", "password1")
        identity = auth_service.jwt_service.verify_session(token)
        assert identity.user_id == test_user["user_id"]
        assert identity.username == "alice"

    def test_same_error_for_unknown_user_and_bad_password(
        self, auth_service: AuthService, db_session: Session, test_user: dict
    ):
        with pytest.raises(AuthenticationError) as unknown:
            auth_service.login(db_session, "who@x.com", "password1")
        with pytest.raises(AuthenticationError) as wrong:
            auth_service.login(db_session, "a@x.com", "password2")
        assert unknown.value.to_dict() == wrong.value.to_dict()

    def test_invalid_email_rejected_before_storage(self, auth_service: AuthService):
        db = MagicMock(spec=Session)
        with pytest.raises(ValidationError):
            auth_service.login(db, "nope", "password1")
        db.query.assert_not_called()


class TestForgotPassword:
    def test_unknown_email_performs_no_write(self, auth_service: AuthService, notifier):
        db = MagicMock(spec=Session)
        db.query.return_value.filter.return_value.first.return_value = None
        result = auth_service.forgot_password(db, "ghost@x.com")
        assert result.message == RESET_REQUESTED
        assert result.reset_token is None
        db.commit.assert_not_called()
        assert notifier.sent == []

    def test_invalid_email_rejected_before_storage(self, auth_service: AuthService):
        db = MagicMock(spec=Session)
        with pytest.raises(ValidationError):
            auth_service.forgot_password(db, "ghost")
        db.query.assert_not_called()

    def test_reset_fields_set_together(self, auth_service: AuthService, db_session: Session, test_user: dict):
        auth_service.forgot_password(db_session, "a@x.com")
        user = db_session.query(User).filter(User.email == "a@x.com").one()
        assert user.reset_token is not None
        assert user.reset_token_expires is not None

    def test_token_echoed_only_when_enabled(
        self, auth_service: AuthService, db_session: Session, test_user: dict, notifier
    ):
        auth_service.settings.EXPOSE_RESET_TOKEN = True
        result = auth_service.forgot_password(db_session, "a@x.com")
        assert result.reset_token == notifier.last_token

    def test_token_never_echoed_in_production(
        self, auth_service: AuthService, db_session: Session, test_user: dict
    ):
        auth_service.settings.EXPOSE_RESET_TOKEN = True
        auth_service.settings.APP_ENV = "production"
        result = auth_service.forgot_password(db_session, "a@x.com")
        assert result.reset_token is None


class TestResetPassword:
    def test_consumes_token(self, auth_service: AuthService, db_session: Session, test_user: dict, notifier):
        auth_service.forgot_password(db_session, "a@x.com")
        token = notifier.last_token
        auth_service.reset_password(db_session, token, "newpassword1")

        with pytest.raises(InvalidTokenError):
            auth_service.reset_password(db_session, token, "newpassword2")
        auth_service.login(db_session, "a@x.com", "newpassword1")

    def test_expired_token_rejected(self, auth_service: AuthService, db_session: Session, test_user: dict):
        user = db_session.query(User).filter(User.email == "a@x.com").one()
        token = issue_reset_token(timedelta(hours=1), now=utcnow() - timedelta(hours=2))
        user.set_reset_token(token.value, token.expires_at)
        db_session.commit()

        with pytest.raises(InvalidTokenError):
            auth_service.reset_password(db_session, token.value, "newpassword1")

    def test_token_consumed_mid_request_is_rejected(
        self,
        auth_service: AuthService,
        db_session: Session,
        test_user: dict,
        notifier,
        monkeypatch: pytest.MonkeyPatch,
    ):
        """If another reset uses the token between lookup and write, this one must fail."""
        auth_service.forgot_password(db_session, "a@x.com")
        token = notifier.last_token
        original_hash = auth_service.hasher.hash

        def hash_after_competing_reset(password: str) -> str:
            db_session.execute(
                update(User)
                .where(User.reset_token == token)
                .values(password_hash=original_hash("winnerpass1"), reset_token=None, reset_token_expires=None)
            )
            return original_hash(password)

        monkeypatch.setattr(auth_service.hasher, "hash", hash_after_competing_reset)
        with pytest.raises(InvalidTokenError):
            auth_service.reset_password(db_session, token, "loserpass1")

        with pytest.raises(AuthenticationError):
            auth_service.login(db_session, "a@x.com", "loserpass1")

    def test_old_password_stops_working(
        self, auth_service: AuthService, db_session: Session, test_user: dict, notifier
    ):
        auth_service.forgot_password(db_session, "a@x.com")
        auth_service.reset_password(db_session, notifier.last_token, "newpassword1")
        with pytest.raises(AuthenticationError):
            auth_service.login(db_session, "a@x.com", "password1")
