"""Pydantic schemas for comments."""

from __future__ import annotations

from pydantic import BaseModel, field_validator

from forum.schemas._validators import check_text
from forum.schemas.filters import Metadata

CONTENT_MAX_BYTES = 600


class CommentCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def _content(cls, v: str) -> str:
        return check_text(v, CONTENT_MAX_BYTES)


class CommentUpdate(BaseModel):
    content: str | None = None

    @field_validator("content")
    @classmethod
    def _content(cls, v: str | None) -> str | None:
        return None if v is None else check_text(v, CONTENT_MAX_BYTES)


class CommentRead(BaseModel):
    id: int
    content: str
    version: int

    model_config = {"from_attributes": True}


class CommentEnvelope(BaseModel):
    comment: CommentRead


class CommentList(BaseModel):
    comments: list[CommentRead]
    metadata: Metadata
