"""
vouchboard.api.identity — Discord identity → local principal
=============================================================

Maps a Discord OAuth profile plus its guild list to a :class:`Principal`
and signs/verifies the principal token carried by the browser.

Authorization is a single flag: ``is_admin`` is true iff the user's guild
listing contains the configured guild AND that entry's permission bitmask
has the Administrator bit (``0x8``).  Anything unexpected in the listing
yields ``False``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

ADMIN_BIT = 0x8

TOKEN_ALGORITHM = "HS256"
TOKEN_TTL = timedelta(days=7)

_WEAK_SECRETS = frozenset({
    "change-me",
    "vouchboard-dev-secret-change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32


def _load_session_secret() -> str:
    """Load and validate SESSION_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("SESSION_SECRET", "")
    if not secret:
        raise RuntimeError(
            "SESSION_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"SESSION_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"SESSION_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


SESSION_SECRET: str = _load_session_secret()


# ---------------------------------------------------------------------------
# Principal
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Principal:
    """The authenticated user attached to a request."""

    id: str
    display_name: str
    avatar_ref: str | None = None  # Discord avatar hash
    is_admin: bool = False

    @property
    def avatar_url(self) -> str:
        """Discord CDN avatar URL (default avatar when no hash is set)."""
        if self.avatar_ref:
            ext = "gif" if self.avatar_ref.startswith("a_") else "png"
            return f"https://cdn.discordapp.com/avatars/{self.id}/{self.avatar_ref}.{ext}"
        try:
            index = (int(self.id) >> 22) % 6
        except ValueError:
            index = 0
        return f"https://cdn.discordapp.com/embed/avatars/{index}.png"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.display_name,
            "avatar": self.avatar_ref,
            "avatar_url": self.avatar_url,
            "is_admin": self.is_admin,
        }


def _has_admin_bit(guilds: Any, guild_id: str) -> bool:
    try:
        target = next((g for g in guilds or [] if str(g.get("id")) == guild_id), None)
        if target is None:
            return False
        # Discord serializes permissions as a decimal string
        return bool(int(target.get("permissions", 0)) & ADMIN_BIT)
    except (AttributeError, TypeError, ValueError):
        return False


def build_principal(profile: dict, guilds: list[dict] | None, guild_id: str) -> Principal:
    """Build the principal for a Discord ``/users/@me`` profile.

    *guilds* is the ``/users/@me/guilds`` listing.  Admin status fails
    closed on any malformed entry.
    """
    return Principal(
        id=str(profile["id"]),
        display_name=profile.get("username") or profile.get("global_name") or "Unknown",
        avatar_ref=profile.get("avatar"),
        is_admin=_has_admin_bit(guilds, guild_id),
    )


# ---------------------------------------------------------------------------
# Token
# ---------------------------------------------------------------------------
def issue_token(principal: Principal, *, ttl: timedelta = TOKEN_TTL) -> str:
    payload = {
        "sub": principal.id,
        "username": principal.display_name,
        "avatar": principal.avatar_ref,
        "is_admin": principal.is_admin,
        "exp": datetime.now(UTC) + ttl,
    }
    return jwt.encode(payload, SESSION_SECRET, algorithm=TOKEN_ALGORITHM)


def decode_token(token: str) -> Principal:
    """Verify *token* and rebuild the principal.

    Raises :class:`jwt.InvalidTokenError` for bad signatures, expiry, or
    missing claims.
    """
    payload = jwt.decode(
        token, SESSION_SECRET, algorithms=[TOKEN_ALGORITHM], options={"require": ["sub", "exp"]}
    )
    return Principal(
        id=str(payload["sub"]),
        display_name=payload.get("username") or "Unknown",
        avatar_ref=payload.get("avatar"),
        is_admin=bool(payload.get("is_admin")),
    )
