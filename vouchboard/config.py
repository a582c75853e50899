"""
vouchboard.config — YAML + Environment Configuration Loader
============================================================

Reads the optional ``config.yaml`` for deployment identity (which guild this
instance serves, listening port, outbound notification targets) and lets
environment variables override every key.  Secrets (database URL, session
secret, OAuth credentials) never live here; they are read from the
environment by the module that uses them.

Usage::

    from vouchboard.config import load_config

    cfg = load_config()          # reads ./config.yaml if present
    print(cfg.guild_id)          # "1468816181854081229"
    print(cfg.port)              # 3000
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_PORT = 3000
DEFAULT_COMMUNITY_NAME = "Vouchboard"

# env var → config key
_ENV_OVERRIDES = {
    "GUILD_ID": "guild_id",
    "PORT": "port",
    "COMMUNITY_NAME": "community_name",
    "WEBHOOK_URL": "webhook_url",
    "LEADERBOARD_UPDATE_URL": "leaderboard_update_url",
}


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class VouchboardConfig:
    """Immutable deployment configuration.

    ``guild_id`` is kept as a string: Discord snowflakes are compared
    against the string ids returned by the OAuth guild listing.
    """

    guild_id: str
    port: int = DEFAULT_PORT
    community_name: str = DEFAULT_COMMUNITY_NAME

    # Best-effort notification targets (None → skipped)
    webhook_url: str | None = None
    leaderboard_update_url: str | None = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> VouchboardConfig:
    """Read *path* (if it exists), apply env overrides, and return a config.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  A missing file is
        not an error; the environment alone may configure the app.

    Raises
    ------
    RuntimeError
        If no guild id is configured anywhere.
    ValueError
        If ``port`` is not an integer.
    """
    raw: dict = {}
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}

    for env_name, key in _ENV_OVERRIDES.items():
        value = os.getenv(env_name, "").strip()
        if value:
            raw[key] = value

    guild_id = str(raw.get("guild_id") or "").strip()
    if not guild_id:
        raise RuntimeError(
            "No guild id configured.  "
            "Set GUILD_ID in .env or guild_id in config.yaml."
        )

    return VouchboardConfig(
        guild_id=guild_id,
        port=int(raw.get("port") or DEFAULT_PORT),
        community_name=str(raw.get("community_name") or DEFAULT_COMMUNITY_NAME),
        webhook_url=raw.get("webhook_url") or None,
        leaderboard_update_url=raw.get("leaderboard_update_url") or None,
    )
