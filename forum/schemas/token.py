"""Pydantic schemas for bearer tokens."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator

from forum.core.security import TOKEN_PLAINTEXT_LENGTH
from forum.schemas.user import check_password, normalise_email


class TokenPlaintext(BaseModel):
    token: str

    @field_validator("token")
    @classmethod
    def _token(cls, v: str) -> str:
        if v == "":
            raise ValueError("must be provided")
        if len(v) != TOKEN_PLAINTEXT_LENGTH:
            raise ValueError(f"must be {TOKEN_PLAINTEXT_LENGTH} bytes long")
        return v


class PasswordReset(TokenPlaintext):
    password: str

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password(v)


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalise_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if v == "":
            raise ValueError("must be provided")
        return v


class EmailRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalise_email(v)


class AuthenticationToken(BaseModel):
    token: str
    expiry: datetime


class AuthenticationTokenEnvelope(BaseModel):
    authentication_token: AuthenticationToken


class MessageResponse(BaseModel):
    message: str
