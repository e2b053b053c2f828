"""
Concrete versioned stores for forums, comments and users.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from forum.core.exceptions import DuplicateEmailError, RecordNotFoundError
from forum.db.session import bounded
from forum.db.versioned import VersionedStore
from forum.models.comment import Comment
from forum.models.forum import Forum
from forum.models.user import User


class ForumStore(VersionedStore[Forum]):
    model = Forum
    content_fields = ("title", "content")
    search_fields = ("title", "content")
    sort_safelist = ("id", "title", "content", "-id", "-title", "-content")


class CommentStore(VersionedStore[Comment]):
    model = Comment
    content_fields = ("content",)
    search_fields = ("content",)
    sort_safelist = ("id", "content", "-id", "-content")


class UserStore(VersionedStore[User]):
    model = User
    content_fields = ("name", "email", "password_hash", "activated")

    async def insert(self, resource: User) -> User:
        try:
            return await super().insert(resource)
        except IntegrityError as exc:
            raise DuplicateEmailError() from exc

    async def update(self, resource: User) -> User:
        try:
            return await super().update(resource)
        except IntegrityError as exc:
            await self.db.rollback()
            raise DuplicateEmailError() from exc

    async def get_by_email(self, email: str) -> User:
        return await bounded(self._get_by_email(email), self.timeout)

    async def _get_by_email(self, email: str) -> User:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        user = result.scalar_one_or_none()
        if user is None:
            raise RecordNotFoundError()
        self.db.expunge(user)
        return user
