"""
User endpoints — registration, activation and password reset.

None of these require a permission: a freshly registered account is not
activated yet and must still be able to reach the activation endpoint.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from forum.api.v1.deps import get_db, get_mailer, get_permission_registry, get_token_service, get_user_store
from forum.core.config import settings
from forum.core.exceptions import FailedValidationError, MalformedTokenError
from forum.core.mailer import TEMPLATE_USER_WELCOME, Mailer
from forum.core.permissions import PermissionRegistry
from forum.core.security import get_password_hash
from forum.core.tokens import TokenService
from forum.db.session import atomic
from forum.db.stores import UserStore
from forum.models.token import SCOPE_ACTIVATION, SCOPE_PASSWORD_RESET
from forum.models.user import User
from forum.schemas.token import MessageResponse, PasswordReset, TokenPlaintext
from forum.schemas.user import UserCreate, UserEnvelope, UserRead

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


async def _user_for_token(tokens: TokenService, plaintext: str, scope: str, message: str) -> User:
    try:
        user = await tokens.validate(plaintext, scope)
    except MalformedTokenError:
        user = None
    if user is None:
        raise FailedValidationError({"token": message})
    return user


@router.post("", response_model=UserEnvelope, status_code=status.HTTP_202_ACCEPTED)
async def register_user(
    body: UserCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    users: UserStore = Depends(get_user_store),
    permissions: PermissionRegistry = Depends(get_permission_registry),
    tokens: TokenService = Depends(get_token_service),
) -> UserEnvelope:
    """Create an unactivated account and email it an activation token.

    The account, its default permissions and the activation token are
    written together or not at all.
    """
    async with atomic(db):
        user = await users.insert(
            User(
                name=body.name,
                email=body.email,
                password_hash=get_password_hash(body.password),
                activated=False,
            )
        )
        await permissions.add_for_user(user.id, *settings.DEFAULT_PERMISSIONS)
        token = await tokens.issue(user.id, timedelta(hours=settings.ACTIVATION_TOKEN_TTL_HOURS), SCOPE_ACTIVATION)

    background_tasks.add_task(
        mailer.send,
        user.email,
        TEMPLATE_USER_WELCOME,
        {"activation_token": token.plaintext, "user_id": user.id},
    )
    logger.info("Registered user %s", user.id)
    return UserEnvelope(user=UserRead.model_validate(user))


@router.put("/activated", response_model=UserEnvelope)
async def activate_user(
    body: TokenPlaintext,
    users: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
) -> UserEnvelope:
    user = await _user_for_token(tokens, body.token, SCOPE_ACTIVATION, "invalid or expired activation token")

    user.activated = True
    await users.update(user)
    await tokens.revoke_all(user.id, SCOPE_ACTIVATION)
    logger.info("Activated user %s", user.id)
    return UserEnvelope(user=UserRead.model_validate(user))


@router.put("/password", response_model=MessageResponse)
async def reset_password(
    body: PasswordReset,
    users: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
) -> MessageResponse:
    user = await _user_for_token(
        tokens, body.token, SCOPE_PASSWORD_RESET, "invalid or expired password reset token"
    )

    user.password_hash = get_password_hash(body.password)
    await users.update(user)
    await tokens.revoke_all(user.id, SCOPE_PASSWORD_RESET)
    logger.info("Password reset for user %s", user.id)
    return MessageResponse(message="your password was successfully reset")
