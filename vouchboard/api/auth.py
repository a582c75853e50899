"""
vouchboard.api.auth — Discord OAuth2 login → principal cookie
==============================================================
"""

from __future__ import annotations

import logging
import os
import secrets
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse, RedirectResponse
from sqlalchemy import delete

from vouchboard.api.deps import TOKEN_COOKIE, get_config, get_engine, require_authenticated
from vouchboard.api.identity import TOKEN_TTL, Principal, build_principal, issue_token
from vouchboard.config import VouchboardConfig
from vouchboard.database.engine import get_session, run_db
from vouchboard.database.models import OAuthState

logger = logging.getLogger(__name__)
router = APIRouter(tags=["auth"])

DISCORD_API = "https://discord.com/api/v10"
OAUTH_SCOPE = "identify guilds"
OAUTH_STATE_TTL_SECONDS = 600
LOGIN_FAILED_PATH = "/login-failed"


def _oauth_env() -> tuple[str, str, str]:
    """Return required OAuth env vars or raise a clear 500."""
    client_id = os.getenv("DISCORD_CLIENT_ID", "").strip()
    client_secret = os.getenv("DISCORD_CLIENT_SECRET", "").strip()
    callback_url = os.getenv("DISCORD_CALLBACK_URL", "").strip()

    missing = [
        name
        for name, value in (
            ("DISCORD_CLIENT_ID", client_id),
            ("DISCORD_CLIENT_SECRET", client_secret),
            ("DISCORD_CALLBACK_URL", callback_url),
        )
        if not value
    ]
    if missing:
        raise HTTPException(
            status_code=500,
            detail="Discord OAuth is not configured: missing " + ", ".join(missing),
        )

    return client_id, client_secret, callback_url


def _store_oauth_state(engine, state: str) -> None:
    """Persist an OAuth state token and prune stale entries."""
    cutoff = datetime.now(UTC) - timedelta(seconds=OAUTH_STATE_TTL_SECONDS)
    with get_session(engine) as session:
        session.execute(delete(OAuthState).where(OAuthState.created_at < cutoff))
        session.add(OAuthState(state=state))


def _consume_oauth_state(engine, state: str) -> bool:
    """Consume a one-time OAuth state token if valid and unexpired."""
    cutoff = datetime.now(UTC) - timedelta(seconds=OAUTH_STATE_TTL_SECONDS)
    with get_session(engine) as session:
        session.execute(delete(OAuthState).where(OAuthState.created_at < cutoff))
        row = session.get(OAuthState, state)
        if row is None:
            return False
        session.delete(row)
        return True


def _login_failed() -> RedirectResponse:
    return RedirectResponse(LOGIN_FAILED_PATH, status_code=302)


async def _fetch_discord_identity(code: str) -> tuple[dict, list[dict]] | None:
    """Exchange *code* and fetch the user plus their guild list."""
    client_id, client_secret, callback_url = _oauth_env()

    transport = httpx.AsyncHTTPTransport(retries=1)
    async with httpx.AsyncClient(timeout=10, transport=transport) as client:
        token_resp = await client.post(
            f"{DISCORD_API}/oauth2/token",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": callback_url,
                "client_id": client_id,
                "client_secret": client_secret,
            },
        )
        if token_resp.status_code != 200:
            logger.warning("OAuth token exchange failed: HTTP %d", token_resp.status_code)
            return None

        access_token = token_resp.json().get("access_token")
        if not access_token:
            logger.warning("OAuth token exchange returned no access token")
            return None

        headers = {"Authorization": f"Bearer {access_token}"}
        user_resp = await client.get(f"{DISCORD_API}/users/@me", headers=headers)
        guilds_resp = await client.get(f"{DISCORD_API}/users/@me/guilds", headers=headers)

    if user_resp.status_code != 200:
        logger.warning("Failed to fetch Discord user: HTTP %d", user_resp.status_code)
        return None

    # A failed guild listing only costs admin rights, not the login.
    guilds = guilds_resp.json() if guilds_resp.status_code == 200 else []
    return user_resp.json(), guilds


@router.get("/auth/discord")
async def login(engine=Depends(get_engine)):
    """Redirect to the Discord OAuth2 consent screen."""
    client_id, _, callback_url = _oauth_env()

    state = secrets.token_urlsafe(32)
    await run_db(_store_oauth_state, engine, state)

    query = urlencode(
        {
            "client_id": client_id,
            "redirect_uri": callback_url,
            "response_type": "code",
            "scope": OAUTH_SCOPE,
            "state": state,
        }
    )
    return RedirectResponse(f"https://discord.com/oauth2/authorize?{query}")


@router.get("/auth/discord/callback")
async def callback(
    code: str | None = None,
    state: str | None = None,
    cfg: VouchboardConfig = Depends(get_config),
    engine=Depends(get_engine),
):
    """Exchange the OAuth code, attach the principal cookie, go home."""
    if not code or not state:
        return _login_failed()
    if not await run_db(_consume_oauth_state, engine, state):
        logger.warning("Rejected OAuth callback with unknown or expired state")
        return _login_failed()

    try:
        identity = await _fetch_discord_identity(code)
    except httpx.HTTPError as exc:
        logger.warning("Discord OAuth request failed: %r", exc)
        identity = None
    if identity is None:
        return _login_failed()

    profile, guilds = identity
    principal = build_principal(profile, guilds, cfg.guild_id)
    logger.info("Login: %s (%s) admin=%s", principal.display_name, principal.id, principal.is_admin)

    response = RedirectResponse("/", status_code=302)
    response.set_cookie(
        TOKEN_COOKIE,
        issue_token(principal),
        max_age=int(TOKEN_TTL.total_seconds()),
        httponly=True,
        samesite="lax",
        secure=os.getenv("DISCORD_CALLBACK_URL", "").startswith("https://"),
    )
    return response


@router.get("/logout")
async def logout():
    response = RedirectResponse("/", status_code=302)
    response.delete_cookie(TOKEN_COOKIE)
    return response


@router.get(LOGIN_FAILED_PATH)
async def login_failed():
    return PlainTextResponse("Discord login failed.")


@router.get("/auth/me")
async def me(principal: Principal = Depends(require_authenticated)):
    """Return the current principal."""
    return principal.to_dict()
