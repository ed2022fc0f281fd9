"""Pydantic schemas for authentication endpoints.

Fields are optional at the schema level so that missing values reach the
service and are reported with the same messages as blank ones.
"""

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class ForgotPasswordRequest(BaseModel):
    email: str | None = None


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str | None = None
    new_password: str | None = Field(default=None, alias="newPassword")


class MessageResponse(BaseModel):
    message: str


class LoginResponse(BaseModel):
    message: str
    token: str


class SessionResponse(BaseModel):
    message: str
    username: str
    userid: int


class ForgotPasswordResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    reset_token: str | None = Field(default=None, serialization_alias="resetToken")
