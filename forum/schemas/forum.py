"""Pydantic schemas for forum posts."""

from __future__ import annotations

from pydantic import BaseModel, field_validator

from forum.schemas._validators import check_text
from forum.schemas.filters import Metadata

TITLE_MAX_BYTES = 200
CONTENT_MAX_BYTES = 600


class ForumCreate(BaseModel):
    title: str
    content: str

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return check_text(v, TITLE_MAX_BYTES)

    @field_validator("content")
    @classmethod
    def _content(cls, v: str) -> str:
        return check_text(v, CONTENT_MAX_BYTES)


class ForumUpdate(BaseModel):
    """Partial update: omitted fields keep their stored value."""

    title: str | None = None
    content: str | None = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: str | None) -> str | None:
        return None if v is None else check_text(v, TITLE_MAX_BYTES)

    @field_validator("content")
    @classmethod
    def _content(cls, v: str | None) -> str | None:
        return None if v is None else check_text(v, CONTENT_MAX_BYTES)


class ForumRead(BaseModel):
    id: int
    title: str
    content: str
    version: int

    model_config = {"from_attributes": True}


class ForumEnvelope(BaseModel):
    forum: ForumRead


class ForumList(BaseModel):
    forums: list[ForumRead]
    metadata: Metadata
