"""
vouchboard.api.deps — FastAPI dependency injection
===================================================

Providers (engine, config, relay) and the two guards every protected route
uses:

- :func:`require_authenticated` — any signed-in member.
- :func:`require_admin` — signed-in member with the guild Administrator bit.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Cookie, Depends, Header
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from vouchboard.api.identity import Principal, decode_token
from vouchboard.config import VouchboardConfig, load_config
from vouchboard.database.engine import create_db_engine
from vouchboard.errors import ForbiddenError, UnauthenticatedError
from vouchboard.services.notification_service import NotificationRelay

TOKEN_COOKIE = "vouchboard_token"


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> VouchboardConfig:
    return load_config()


@lru_cache(maxsize=1)
def get_relay() -> NotificationRelay:
    cfg = get_config()
    return NotificationRelay(
        webhook_url=cfg.webhook_url,
        leaderboard_update_url=cfg.leaderboard_update_url,
    )


def get_principal(
    authorization: Annotated[str | None, Header()] = None,
    vouchboard_token: Annotated[str | None, Cookie()] = None,
) -> Principal | None:
    """Principal from a Bearer header or the login cookie; ``None`` if
    absent or invalid."""
    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization.split(" ", 1)[1]
    elif vouchboard_token:
        token = vouchboard_token
    if not token:
        return None
    try:
        return decode_token(token)
    except InvalidTokenError:
        return None


def require_authenticated(
    principal: Annotated[Principal | None, Depends(get_principal)],
) -> Principal:
    if principal is None:
        raise UnauthenticatedError("Login required.")
    return principal


def require_admin(
    principal: Annotated[Principal, Depends(require_authenticated)],
) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Access denied (admin required).")
    return principal
