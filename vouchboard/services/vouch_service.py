"""
vouchboard.services.vouch_service — Vouch lifecycle
====================================================

Create, delete and list vouches for one guild.  Every function takes the
guild id explicitly.  Mutations run inside
:func:`~vouchboard.database.store.guild_transaction` and return a
:class:`VouchMutation` carrying the event for the notification relay; the
relay is never called from here.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Engine

from vouchboard.database.store import guild_transaction, load_record
from vouchboard.engine.events import VouchEvent, VouchEventKind
from vouchboard.engine.records import now_ms
from vouchboard.engine.vouches import (
    LeaderboardRow,
    build_vouch,
    compute_leaderboard,
    format_timestamp,
    resequence,
)
from vouchboard.errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VouchMutation:
    vouch_id: int
    next_id: int
    event: VouchEvent


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
def create_vouch(
    engine: Engine,
    guild_id: str,
    *,
    vendor: Any,
    note: Any,
    item: Any = None,
    qty: Any = None,
    price: Any = None,
    payment: Any = None,
    comment: Any = None,
    anonymous: bool = False,
    author_id: str | None = None,
    author_tag: str | None = None,
    author_avatar: str | None = None,
) -> VouchMutation:
    """Validate, append and resequence a new vouch.

    The guild document is created on first use.  A validation failure
    leaves stored state untouched (the transaction is discarded).
    """
    with guild_transaction(engine, guild_id, create=True) as record:
        vouch = build_vouch(
            record,
            vendor=vendor,
            note=note,
            item=item,
            qty=qty,
            price=price,
            payment=payment,
            comment=comment,
            anonymous=anonymous,
            author_id=author_id,
            author_tag=author_tag,
            author_avatar=author_avatar,
            created_at=now_ms(),
        )
        record.vouches.append(vouch)
        resequence(record)
        next_id = record.next_id

    logger.info(
        "Vouch #%d created for %r by %s (guild %s)",
        vouch.id, vouch.vendor_label, author_id, guild_id,
    )
    return VouchMutation(
        vouch_id=vouch.id,
        next_id=next_id,
        event=VouchEvent.now(VouchEventKind.CREATED, guild_id, dataclasses.replace(vouch), next_id),
    )


def delete_vouch(engine: Engine, guild_id: str, vouch_id: int) -> VouchMutation:
    """Remove vouch *vouch_id* and renumber the survivors ``1..N``.

    Raises
    ------
    NotFoundError
        If the guild document or the vouch doesn't exist.
    """
    with guild_transaction(engine, guild_id, create=False) as record:
        target = record.find_vouch(vouch_id)
        if target is None:
            raise NotFoundError("Vouch not found.")
        snapshot = dataclasses.replace(target)
        record.vouches = [v for v in record.vouches if v.id != vouch_id]
        resequence(record)
        next_id = record.next_id

    logger.info("Vouch #%d deleted (guild %s), next id %d", vouch_id, guild_id, next_id)
    return VouchMutation(
        vouch_id=vouch_id,
        next_id=next_id,
        event=VouchEvent.now(VouchEventKind.DELETED, guild_id, snapshot, next_id),
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_vouches(engine: Engine, guild_id: str) -> list[dict]:
    """All vouches, newest first, each with a formatted ``createdAtFmt``."""
    record = load_record(engine, guild_id)
    if record is None:
        return []
    vouches = sorted(record.vouches, key=lambda v: v.created_at, reverse=True)
    return [
        {**v.to_dict(), "createdAtFmt": format_timestamp(v.created_at)}
        for v in vouches
    ]


def get_leaderboard(engine: Engine, guild_id: str) -> list[LeaderboardRow]:
    record = load_record(engine, guild_id)
    return compute_leaderboard(record.vouches) if record else []
