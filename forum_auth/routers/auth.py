"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from forum_auth.database import get_db
from forum_auth.dependencies import get_auth_service, get_current_user
from forum_auth.rate_limit import limiter
from forum_auth.schemas.auth import (
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    SessionResponse,
)
from forum_auth.services.auth import AuthService
from forum_auth.services.jwt import Identity

router = APIRouter(prefix="/user", tags=["Authentication"])


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def register(
    request: Request,
    body: RegisterRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Register a new user account."""
    auth_service.register(
        db,
        username=body.username,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
    )
    return MessageResponse(message="User registered successfully")


@router.post("/login", response_model=LoginResponse)
@limiter.limit("10/minute")
def login(
    request: Request,
    body: LoginRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Authenticate and receive a session token."""
    token = auth_service.login(db, body.email, body.password)
    return LoginResponse(message="User login successful", token=token)


@router.get("/checkUser", response_model=SessionResponse)
def check_user(user: Identity = Depends(get_current_user)) -> SessionResponse:
    """Return the identity behind the bearer token."""
    return SessionResponse(message="Valid user", username=user.username, userid=user.user_id)


@router.post("/forgot-password", response_model=ForgotPasswordResponse, response_model_exclude_none=True)
@limiter.limit("3/minute")
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> ForgotPasswordResponse:
    """Request a password reset. The response never reveals whether the email is registered."""
    result = auth_service.forgot_password(db, body.email)
    return ForgotPasswordResponse(message=result.message, reset_token=result.reset_token)


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit("5/minute")
def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Set a new password using a reset token."""
    auth_service.reset_password(db, body.token, body.new_password)
    return MessageResponse(message="Password has been reset successfully")
