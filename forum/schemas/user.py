"""Pydantic schemas for user registration and account maintenance."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, field_validator

from forum.schemas._validators import check_text

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$")

NAME_MAX_BYTES = 500
PASSWORD_MIN_BYTES = 8
PASSWORD_MAX_BYTES = 72


def normalise_email(v: str) -> str:
    v = v.strip().lower()
    if not v:
        raise ValueError("must be provided")
    if not _EMAIL_RE.match(v):
        raise ValueError("must be a valid email address")
    return v


def check_password(v: str) -> str:
    if v == "":
        raise ValueError("must be provided")
    size = len(v.encode("utf-8"))
    if size < PASSWORD_MIN_BYTES:
        raise ValueError(f"must be at least {PASSWORD_MIN_BYTES} bytes long")
    if size > PASSWORD_MAX_BYTES:
        raise ValueError(f"must not be more than {PASSWORD_MAX_BYTES} bytes long")
    return v


class UserCreate(BaseModel):
    name: str
    email: str
    password: str

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return check_text(v.strip(), NAME_MAX_BYTES)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalise_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password(v)


class UserRead(BaseModel):
    id: int
    created_at: datetime | None
    name: str
    email: str
    activated: bool

    model_config = {"from_attributes": True}


class UserEnvelope(BaseModel):
    user: UserRead
