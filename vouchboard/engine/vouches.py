"""
vouchboard.engine.vouches — Vouch numbering & leaderboard
==========================================================

Pure functions.  No Discord I/O, no DB I/O inside the engine.

Numbering rule: vouch ids are ordinals, not permanent identifiers.  After
any deletion every surviving vouch is renumbered ``1..N`` in ascending
``created_at`` order and ``next_id`` becomes ``N + 1``.  A cached "vouch #7"
therefore points at a different vouch once an older one is deleted.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from vouchboard.engine.records import GuildRecord, Vendor, Vouch
from vouchboard.errors import ValidationError

__all__ = [
    "UNKNOWN_VENDOR",
    "LeaderboardRow",
    "build_vouch",
    "clean_text",
    "compute_leaderboard",
    "format_timestamp",
    "parse_note",
    "parse_qty",
    "resequence",
    "resolve_vendor",
]

UNKNOWN_VENDOR = "Unknown"

_DIGITS = re.compile(r"^\d+$")


# ---------------------------------------------------------------------------
# Input parsing
# ---------------------------------------------------------------------------
def clean_text(value: Any) -> str | None:
    """Stringify and strip a free-form field; blank → ``None``."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_note(value: Any) -> int | float:
    """Parse the required 0-5 rating.

    The range is not enforced; anything numeric is accepted.  Integral
    values are stored as ``int``.

    Raises
    ------
    ValidationError
        If the note is missing or not a finite number.
    """
    if value is None or isinstance(value, bool) or clean_text(value) is None:
        raise ValidationError("Missing required fields.")
    try:
        note = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Note must be a number.") from None
    if not math.isfinite(note):
        raise ValidationError("Note must be a number.")
    return int(note) if note.is_integer() else note


def parse_qty(value: Any) -> int:
    """Quantity as a positive int; anything unparsable falls back to 1."""
    try:
        qty = int(str(value).strip())
    except (TypeError, ValueError):
        return 1
    return qty if qty > 0 else 1


def resolve_vendor(vendors: Iterable[Vendor], ref: str) -> tuple[str | None, str]:
    """Match *ref* against the vendor list → ``(vendor_id, vendor_label)``.

    The first vendor whose id or label equals *ref* wins.  ``vendor_id`` is
    only set when that vendor's stored id is purely numeric (a Discord user
    id).  Unknown references come back verbatim as the label.
    """
    for vendor in vendors:
        if (vendor.id is not None and vendor.id == ref) or vendor.label == ref:
            vendor_id = vendor.id if vendor.id and _DIGITS.match(vendor.id) else None
            return vendor_id, vendor.label
    return None, ref


def build_vouch(
    record: GuildRecord,
    *,
    vendor: Any,
    note: Any,
    created_at: int,
    item: Any = None,
    qty: Any = None,
    price: Any = None,
    payment: Any = None,
    comment: Any = None,
    anonymous: bool = False,
    author_id: str | None = None,
    author_tag: str | None = None,
    author_avatar: str | None = None,
) -> Vouch:
    """Validate raw input and build the next vouch for *record*.

    The vouch is not appended; the caller decides when to mutate.
    """
    vendor_ref = clean_text(vendor)
    if vendor_ref is None:
        raise ValidationError("Missing required fields.")
    parsed_note = parse_note(note)

    vendor_id, vendor_label = resolve_vendor(record.vendors, vendor_ref)
    return Vouch(
        id=record.next_id or len(record.vouches) + 1,
        vendor_id=vendor_id,
        vendor_label=vendor_label,
        note=parsed_note,
        item=clean_text(item),
        qty=parse_qty(qty),
        price=clean_text(price),
        payment=clean_text(payment),
        comment=clean_text(comment),
        author_id=author_id,
        author_tag=author_tag,
        author_avatar=author_avatar,
        anonymous=bool(anonymous),
        created_at=created_at,
    )


# ---------------------------------------------------------------------------
# Resequencing
# ---------------------------------------------------------------------------
def resequence(record: GuildRecord) -> GuildRecord:
    """Renumber vouches ``1..N`` by ascending ``created_at`` (stable).

    Mutates and returns *record*; ``next_id`` becomes ``N + 1``.
    """
    record.vouches = sorted(record.vouches, key=lambda v: v.created_at)
    for index, vouch in enumerate(record.vouches, start=1):
        vouch.id = index
    record.next_id = len(record.vouches) + 1
    return record


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LeaderboardRow:
    rank: int
    vendor: str  # display label ("@<id>" for Discord user ids)
    count: int

    def to_dict(self) -> dict:
        return {"rank": self.rank, "vendor": self.vendor, "count": self.count}


def compute_leaderboard(vouches: Sequence[Vouch]) -> list[LeaderboardRow]:
    """Count vouches per vendor key, ranked by count descending.

    Ties keep the order in which each vendor first appears in *vouches*.
    """
    counts: dict[str, int] = {}
    for vouch in vouches:
        key = vouch.vendor_key or UNKNOWN_VENDOR
        counts[key] = counts.get(key, 0) + 1

    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [
        LeaderboardRow(
            rank=i,
            vendor=f"@{key}" if _DIGITS.match(key) else key,
            count=n,
        )
        for i, (key, n) in enumerate(ranked, start=1)
    ]


def format_timestamp(ms: int) -> str:
    """Epoch milliseconds → ``dd/mm/YYYY HH:MM`` (UTC)."""
    return datetime.fromtimestamp(ms / 1000, tz=UTC).strftime("%d/%m/%Y %H:%M")
