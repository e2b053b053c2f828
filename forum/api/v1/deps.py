"""
FastAPI dependencies — database session, stores, and the auth pipeline.

Authorization runs in a fixed order, stopping at the first failure:

1. rate limiting (``RateLimitMiddleware``, before any dependency),
2. token resolution (``get_current_user``; no or unknown token → anonymous),
3. authentication (``require_authenticated_user``; anonymous → 401),
4. activation (``require_activated_user``; inactive → 403),
5. capability (``require_permission``; missing → 403).
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from forum.core.exceptions import (
    AuthenticationRequiredError,
    InactiveAccountError,
    InvalidAuthenticationTokenError,
    NotPermittedError,
)
from forum.core.mailer import Mailer
from forum.core.permissions import PermissionRegistry
from forum.core.security import is_token_well_formed
from forum.core.tokens import TokenService
from forum.db.session import async_session_factory
from forum.db.stores import CommentStore, ForumStore, UserStore
from forum.models.token import SCOPE_AUTHENTICATION
from forum.models.user import ANONYMOUS_USER, AnonymousUser, User


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Services & stores ───────────────────────────────────────────────
def get_token_service(db: AsyncSession = Depends(get_db)) -> TokenService:
    return TokenService(db)


def get_permission_registry(db: AsyncSession = Depends(get_db)) -> PermissionRegistry:
    return PermissionRegistry(db)


def get_forum_store(db: AsyncSession = Depends(get_db)) -> ForumStore:
    return ForumStore(db)


def get_comment_store(db: AsyncSession = Depends(get_db)) -> CommentStore:
    return CommentStore(db)


def get_user_store(db: AsyncSession = Depends(get_db)) -> UserStore:
    return UserStore(db)


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    authorization: str | None = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
) -> User | AnonymousUser:
    """Resolve the bearer token to a user.

    A missing header, or a well-formed token that is unknown or expired,
    yields the anonymous user; the permission checks decide what anonymous
    callers may do. A malformed header is rejected outright.
    """
    if authorization is None:
        return ANONYMOUS_USER

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not is_token_well_formed(parts[1]):
        raise InvalidAuthenticationTokenError()

    user = await tokens.validate(parts[1], SCOPE_AUTHENTICATION)
    return ANONYMOUS_USER if user is None else user


async def require_authenticated_user(
    current_user: User | AnonymousUser = Depends(get_current_user),
) -> User:
    if current_user.is_anonymous:
        raise AuthenticationRequiredError()
    return current_user  # type: ignore[return-value]


async def require_activated_user(
    current_user: User = Depends(require_authenticated_user),
) -> User:
    if not current_user.activated:
        raise InactiveAccountError()
    return current_user


def require_permission(code: str) -> Callable[..., Awaitable[User]]:
    """Build a dependency that admits only activated users holding *code*."""

    async def _require_permission(
        current_user: User = Depends(require_activated_user),
        registry: PermissionRegistry = Depends(get_permission_registry),
    ) -> User:
        if not await registry.has(current_user, code):
            raise NotPermittedError()
        return current_user

    return _require_permission
