"""
Token endpoints — login, logout, and (re)sending activation and
password-reset tokens.

Login is additionally throttled per client address with slowapi, on top of
the global token-bucket middleware.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from forum.api.v1.deps import get_mailer, get_token_service, get_user_store, require_authenticated_user
from forum.core.config import settings
from forum.core.exceptions import FailedValidationError, InvalidCredentialsError, RecordNotFoundError
from forum.core.mailer import TEMPLATE_TOKEN_ACTIVATION, TEMPLATE_TOKEN_PASSWORD_RESET, Mailer
from forum.core.security import verify_password
from forum.core.tokens import TokenService
from forum.db.stores import UserStore
from forum.models.token import SCOPE_ACTIVATION, SCOPE_AUTHENTICATION, SCOPE_PASSWORD_RESET
from forum.models.user import User
from forum.schemas.token import (
    AuthenticationToken,
    AuthenticationTokenEnvelope,
    EmailRequest,
    LoginRequest,
    MessageResponse,
)

# Brute-force guard on login, keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.LIMITER_ENABLED)

router = APIRouter(prefix="/tokens", tags=["tokens"])
logger = logging.getLogger(__name__)


async def _user_for_email(users: UserStore, email: str) -> User:
    try:
        return await users.get_by_email(email)
    except RecordNotFoundError:
        raise FailedValidationError({"email": "no matching email address found"}) from None


@router.post(
    "/authentication",
    response_model=AuthenticationTokenEnvelope,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def create_authentication_token(
    request: Request,
    body: LoginRequest,
    users: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
) -> AuthenticationTokenEnvelope:
    """Exchange email + password for a 24h bearer token."""
    try:
        user = await users.get_by_email(body.email)
    except RecordNotFoundError:
        raise InvalidCredentialsError() from None

    if not verify_password(body.password, user.password_hash):
        logger.info("Failed login for user %s", user.id)
        raise InvalidCredentialsError()

    token = await tokens.issue(user.id, timedelta(hours=settings.AUTH_TOKEN_TTL_HOURS), SCOPE_AUTHENTICATION)
    return AuthenticationTokenEnvelope(
        authentication_token=AuthenticationToken(token=token.plaintext, expiry=token.expiry)
    )


@router.delete("/authentication", response_model=MessageResponse)
async def delete_authentication_tokens(
    tokens: TokenService = Depends(get_token_service),
    current_user: User = Depends(require_authenticated_user),
) -> MessageResponse:
    """Log out everywhere: revoke every authentication token of the caller."""
    await tokens.revoke_all(current_user.id, SCOPE_AUTHENTICATION)
    return MessageResponse(message="you have been logged out")


@router.post("/activation", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_activation_token(
    body: EmailRequest,
    background_tasks: BackgroundTasks,
    mailer: Mailer = Depends(get_mailer),
    users: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
) -> MessageResponse:
    user = await _user_for_email(users, body.email)
    if user.activated:
        raise FailedValidationError({"email": "user has already been activated"})

    token = await tokens.issue(user.id, timedelta(hours=settings.ACTIVATION_TOKEN_TTL_HOURS), SCOPE_ACTIVATION)
    background_tasks.add_task(
        mailer.send,
        user.email,
        TEMPLATE_TOKEN_ACTIVATION,
        {"activation_token": token.plaintext},
    )
    return MessageResponse(message="an email will be sent to you containing activation instructions")


@router.post("/password-reset", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_password_reset_token(
    body: EmailRequest,
    background_tasks: BackgroundTasks,
    mailer: Mailer = Depends(get_mailer),
    users: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
) -> MessageResponse:
    user = await _user_for_email(users, body.email)
    if not user.activated:
        raise FailedValidationError({"email": "user account must be activated"})

    token = await tokens.issue(
        user.id,
        timedelta(minutes=settings.PASSWORD_RESET_TOKEN_TTL_MINUTES),
        SCOPE_PASSWORD_RESET,
    )
    background_tasks.add_task(
        mailer.send,
        user.email,
        TEMPLATE_TOKEN_PASSWORD_RESET,
        {"password_reset_token": token.plaintext},
    )
    return MessageResponse(message="an email will be sent to you containing password reset instructions")
