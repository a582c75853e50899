"""
vouchboard.services.embeds — Discord embed builders for vouch notifications
=============================================================================

All embed construction lives here so the relay only supplies data.  The
embeds are serialized with ``Embed.to_dict()`` and posted to a webhook.
"""

from __future__ import annotations

from datetime import UTC, datetime

import discord

from vouchboard.engine.records import Vouch
from vouchboard.engine.vouches import UNKNOWN_VENDOR

MAX_STARS = 5


def _vendor_display(vouch: Vouch) -> str:
    if vouch.vendor_id:
        return f"<@{vouch.vendor_id}>"
    return vouch.vendor_label or UNKNOWN_VENDOR


def _stars(note: int | float) -> str:
    filled = max(0, min(MAX_STARS, int(note)))
    return "⭐" * filled + "☆" * (MAX_STARS - filled) + f" ({note}/{MAX_STARS})"


def build_vouch_created_embed(vouch: Vouch, next_id: int) -> discord.Embed:
    """Build the public announcement for a new vouch.

    Anonymous vouches carry no author mention or avatar.
    """
    if vouch.anonymous or not vouch.author_id:
        author = "an anonymous member"
    else:
        author = f"<@{vouch.author_id}>"

    embed = discord.Embed(
        title=f"✅ Vouch #{vouch.id}",
        description=f"{_vendor_display(vouch)} vouched by {author}\n{_stars(vouch.note)}",
        color=discord.Color.green(),
        timestamp=datetime.fromtimestamp(vouch.created_at / 1000, tz=UTC),
    )
    if vouch.item:
        embed.add_field(name="Item", value=f"{vouch.qty} × {vouch.item}", inline=True)
    if vouch.price:
        embed.add_field(name="Price", value=vouch.price, inline=True)
    if vouch.payment:
        embed.add_field(name="Payment", value=vouch.payment, inline=True)
    if vouch.comment:
        embed.add_field(name="Comment", value=vouch.comment[:1024], inline=False)
    if not vouch.anonymous and vouch.author_avatar:
        embed.set_thumbnail(url=vouch.author_avatar)
    embed.set_footer(text=f"Next vouch: #{next_id}")
    return embed


def build_vouch_deleted_embed(vouch: Vouch, next_id: int) -> discord.Embed:
    """Build the notice for a deleted vouch (ids shift after this)."""
    embed = discord.Embed(
        title=f"\U0001f5d1 Vouch #{vouch.id} removed",
        description=(
            f"The vouch for {_vendor_display(vouch)} was deleted.\n"
            "Later vouches have been renumbered."
        ),
        color=discord.Color.red(),
    )
    embed.set_footer(text=f"Next vouch: #{next_id}")
    return embed
