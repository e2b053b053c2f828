"""
Comment endpoints — same permission and concurrency rules as forum posts.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, Query, Request, Response, status

from forum.api.v1.deps import get_comment_store, require_permission
from forum.api.v1.endpoints._common import check_expected_version, check_sort, json_body, read_body
from forum.core.config import settings
from forum.db.stores import CommentStore
from forum.models.comment import Comment
from forum.models.permission import FORUMS_READ, FORUMS_WRITE
from forum.models.user import User
from forum.schemas.comment import CommentCreate, CommentEnvelope, CommentList, CommentRead, CommentUpdate
from forum.schemas.filters import Filters, Metadata
from forum.schemas.token import MessageResponse

router = APIRouter(prefix="/comment", tags=["comment"])
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=CommentEnvelope,
    status_code=status.HTTP_201_CREATED,
    openapi_extra=json_body(CommentCreate),
)
async def create_comment(
    request: Request,
    response: Response,
    store: CommentStore = Depends(get_comment_store),
    _user: User = Depends(require_permission(FORUMS_WRITE)),
) -> CommentEnvelope:
    body = await read_body(request, CommentCreate)
    comment = await store.insert(Comment(content=body.content))
    response.headers["Location"] = f"{settings.API_V1_PREFIX}/comment/{comment.id}"
    return CommentEnvelope(comment=CommentRead.model_validate(comment))


@router.get("", response_model=CommentList)
async def list_comments(
    content: str = "",
    page: int = Query(default=1, ge=1, le=10_000_000),
    page_size: int = Query(default=20, ge=1, le=100),
    sort: str = "id",
    store: CommentStore = Depends(get_comment_store),
    _user: User = Depends(require_permission(FORUMS_READ)),
) -> CommentList:
    filters = Filters(page=page, page_size=page_size, sort=sort)
    check_sort(filters, store.sort_safelist)
    comments, total = await store.list(filters, content=content)
    return CommentList(
        comments=[CommentRead.model_validate(c) for c in comments],
        metadata=Metadata.calculate(total, filters.page, filters.page_size),
    )


@router.get("/{comment_id}", response_model=CommentEnvelope)
async def show_comment(
    comment_id: int,
    store: CommentStore = Depends(get_comment_store),
    _user: User = Depends(require_permission(FORUMS_READ)),
) -> CommentEnvelope:
    comment = await store.get(comment_id)
    return CommentEnvelope(comment=CommentRead.model_validate(comment))


@router.patch("/{comment_id}", response_model=CommentEnvelope, openapi_extra=json_body(CommentUpdate))
async def update_comment(
    comment_id: int,
    request: Request,
    expected_version: str | None = Header(default=None, alias="X-Expected-Version"),
    store: CommentStore = Depends(get_comment_store),
    _user: User = Depends(require_permission(FORUMS_WRITE)),
) -> CommentEnvelope:
    comment = await store.get(comment_id)
    check_expected_version(expected_version, comment.version)
    body = await read_body(request, CommentUpdate)

    if body.content is not None:
        comment.content = body.content

    await store.update(comment)
    return CommentEnvelope(comment=CommentRead.model_validate(comment))


@router.delete("/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: int,
    store: CommentStore = Depends(get_comment_store),
    _user: User = Depends(require_permission(FORUMS_WRITE)),
) -> MessageResponse:
    await store.delete(comment_id)
    logger.info("Comment %s deleted", comment_id)
    return MessageResponse(message="comment successfully deleted")
