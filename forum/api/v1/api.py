"""
V1 API router aggregator — wires all endpoint modules together.

Every route resolves the caller's identity first, so a malformed
``Authorization`` header is rejected even on endpoints that need no
permission.
"""

from fastapi import APIRouter, Depends

from forum.api.v1.deps import get_current_user
from forum.api.v1.endpoints import comments, forums, healthcheck, tokens, users

api_router = APIRouter(dependencies=[Depends(get_current_user)])

# Liveness
api_router.include_router(healthcheck.router)

# Forum posts and comments
api_router.include_router(forums.router)
api_router.include_router(comments.router)

# Registration, activation, login
api_router.include_router(users.router)
api_router.include_router(tokens.router)
