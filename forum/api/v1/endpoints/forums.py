"""
Forum post endpoints.

- GET operations require ``forums:read``.
- POST / PATCH / DELETE operations require ``forums::write``.
- PATCH goes through the versioned store; a stale ``X-Expected-Version``
  header or a concurrent writer yields an edit conflict.
- Request bodies are read after the permission check and, for PATCH, after
  the record lookup, so a failed check or a missing record wins over a bad body.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, Query, Request, Response, status

from forum.api.v1.deps import get_forum_store, require_permission
from forum.api.v1.endpoints._common import check_expected_version, check_sort, json_body, read_body
from forum.core.config import settings
from forum.db.stores import ForumStore
from forum.models.forum import Forum
from forum.models.permission import FORUMS_READ, FORUMS_WRITE
from forum.models.user import User
from forum.schemas.filters import Filters, Metadata
from forum.schemas.forum import ForumCreate, ForumEnvelope, ForumList, ForumRead, ForumUpdate
from forum.schemas.token import MessageResponse

router = APIRouter(prefix="/forum", tags=["forum"])
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=ForumEnvelope,
    status_code=status.HTTP_201_CREATED,
    openapi_extra=json_body(ForumCreate),
)
async def create_forum(
    request: Request,
    response: Response,
    store: ForumStore = Depends(get_forum_store),
    _user: User = Depends(require_permission(FORUMS_WRITE)),
) -> ForumEnvelope:
    body = await read_body(request, ForumCreate)
    forum = await store.insert(Forum(title=body.title, content=body.content))
    response.headers["Location"] = f"{settings.API_V1_PREFIX}/forum/{forum.id}"
    return ForumEnvelope(forum=ForumRead.model_validate(forum))


@router.get("", response_model=ForumList)
async def list_forums(
    title: str = "",
    content: str = "",
    page: int = Query(default=1, ge=1, le=10_000_000),
    page_size: int = Query(default=20, ge=1, le=100),
    sort: str = "id",
    store: ForumStore = Depends(get_forum_store),
    _user: User = Depends(require_permission(FORUMS_READ)),
) -> ForumList:
    filters = Filters(page=page, page_size=page_size, sort=sort)
    check_sort(filters, store.sort_safelist)
    forums, total = await store.list(filters, title=title, content=content)
    return ForumList(
        forums=[ForumRead.model_validate(f) for f in forums],
        metadata=Metadata.calculate(total, filters.page, filters.page_size),
    )


@router.get("/{forum_id}", response_model=ForumEnvelope)
async def show_forum(
    forum_id: int,
    store: ForumStore = Depends(get_forum_store),
    _user: User = Depends(require_permission(FORUMS_READ)),
) -> ForumEnvelope:
    forum = await store.get(forum_id)
    return ForumEnvelope(forum=ForumRead.model_validate(forum))


@router.patch("/{forum_id}", response_model=ForumEnvelope, openapi_extra=json_body(ForumUpdate))
async def update_forum(
    forum_id: int,
    request: Request,
    expected_version: str | None = Header(default=None, alias="X-Expected-Version"),
    store: ForumStore = Depends(get_forum_store),
    _user: User = Depends(require_permission(FORUMS_WRITE)),
) -> ForumEnvelope:
    """Partial update; omitted fields keep their stored value."""
    forum = await store.get(forum_id)
    check_expected_version(expected_version, forum.version)
    body = await read_body(request, ForumUpdate)

    if body.title is not None:
        forum.title = body.title
    if body.content is not None:
        forum.content = body.content

    await store.update(forum)
    return ForumEnvelope(forum=ForumRead.model_validate(forum))


@router.delete("/{forum_id}", response_model=MessageResponse)
async def delete_forum(
    forum_id: int,
    store: ForumStore = Depends(get_forum_store),
    _user: User = Depends(require_permission(FORUMS_WRITE)),
) -> MessageResponse:
    await store.delete(forum_id)
    logger.info("Forum %s deleted", forum_id)
    return MessageResponse(message="forum successfully deleted")
