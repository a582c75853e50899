"""
vouchboard.engine.records — Guild document dataclasses
=======================================================

In-memory shape of one guild's document.  ``to_dict`` / ``from_dict``
convert to and from the stored JSON, which keeps the camelCase keys of the
original document format (``vendorId``, ``createdAt``, ``nextId`` …).

No Discord I/O, no DB I/O in this module.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "GuildRecord",
    "MessagePointer",
    "Product",
    "Vendor",
    "Vouch",
    "now_ms",
]


def now_ms() -> int:
    """Current time as epoch milliseconds (the stored timestamp unit)."""
    return int(time.time() * 1000)


def _is_real_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and not math.isnan(value)
    )


def _as_int(value: Any, default: int = 0) -> int:
    """Lenient int for legacy fields; unparsable values become *default*."""
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


# ---------------------------------------------------------------------------
# Vendor — entry in the admin-curated vendor list
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class Vendor:
    label: str
    id: str | None = None  # Discord user id when the vendor is a member

    @classmethod
    def from_dict(cls, raw: dict) -> Vendor:
        vendor_id = raw.get("id")
        return cls(
            label=str(raw.get("label") or ""),
            id=str(vendor_id) if vendor_id not in (None, "") else None,
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "label": self.label}


# ---------------------------------------------------------------------------
# Vouch — one member review
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class Vouch:
    """A member-submitted review of a vendor transaction.

    ``anonymous`` only hides the author in outbound notifications; the
    author fields are always stored.
    """

    id: int
    vendor_label: str | None
    note: int | float
    created_at: int
    vendor_id: str | None = None
    item: str | None = None
    qty: int = 1
    price: str | None = None
    payment: str | None = None
    comment: str | None = None
    author_id: str | None = None
    author_tag: str | None = None
    author_avatar: str | None = None
    anonymous: bool = False

    @property
    def vendor_key(self) -> str | None:
        """Grouping key for the leaderboard (id beats label)."""
        return self.vendor_id or self.vendor_label

    @classmethod
    def from_dict(cls, raw: dict) -> Vouch:
        return cls(
            id=_as_int(raw.get("id")),
            vendor_id=raw.get("vendorId") or None,
            vendor_label=raw.get("vendorLabel"),
            note=raw.get("note", 0),
            item=raw.get("item"),
            qty=raw.get("qty") or 1,
            price=raw.get("price"),
            payment=raw.get("payment"),
            comment=raw.get("comment"),
            author_id=raw.get("authorId"),
            # Early documents stored the author's name under "author"
            author_tag=raw.get("authorTag", raw.get("author")),
            author_avatar=raw.get("authorAvatar"),
            anonymous=bool(raw.get("anonymous", False)),
            created_at=_as_int(raw.get("createdAt")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "vendorId": self.vendor_id,
            "vendorLabel": self.vendor_label,
            "note": self.note,
            "item": self.item,
            "qty": self.qty,
            "price": self.price,
            "payment": self.payment,
            "comment": self.comment,
            "authorId": self.author_id,
            "authorTag": self.author_tag,
            "authorAvatar": self.author_avatar,
            "anonymous": self.anonymous,
            "createdAt": self.created_at,
        }


# ---------------------------------------------------------------------------
# Product — catalog entry
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class Product:
    """A catalog entry.

    Fields are kept exactly as stored so that legacy or corrupt entries
    survive loading; ``id`` is ``None`` when the stored id is not a real
    number.  :func:`vouchboard.engine.products.repair_products` normalizes
    them.
    """

    id: int | float | None
    name: str | None = None
    price: float | None = None
    description: str | None = None
    image: str | None = None
    created_at: int | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> Product:
        raw_id = raw.get("id")
        return cls(
            id=raw_id if _is_real_number(raw_id) else None,
            name=raw.get("name"),
            price=raw.get("price"),
            description=raw.get("description"),
            image=raw.get("image"),
            created_at=raw.get("createdAt"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "description": self.description,
            "image": self.image,
            "createdAt": self.created_at,
        }


# ---------------------------------------------------------------------------
# MessagePointer — last summary message posted in a Discord channel
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class MessagePointer:
    channel_id: str | None = None
    message_id: str | None = None

    @classmethod
    def from_dict(cls, raw: dict | None) -> MessagePointer:
        raw = raw or {}
        return cls(channel_id=raw.get("channelId"), message_id=raw.get("messageId"))

    def to_dict(self) -> dict:
        return {"channelId": self.channel_id, "messageId": self.message_id}


# ---------------------------------------------------------------------------
# GuildRecord — the whole per-guild document
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class GuildRecord:
    guild_id: str
    vouches: list[Vouch] = field(default_factory=list)
    next_id: int = 1
    vendors: list[Vendor] = field(default_factory=list)
    items: list[str] = field(default_factory=list)
    payments: list[str] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    last_leaderboard: MessagePointer = field(default_factory=MessagePointer)
    last_products: MessagePointer = field(default_factory=MessagePointer)

    def find_vouch(self, vouch_id: int) -> Vouch | None:
        return next((v for v in self.vouches if v.id == vouch_id), None)

    def find_product(self, product_id: int) -> Product | None:
        return next((p for p in self.products if p.id == product_id), None)

    def to_dict(self) -> dict:
        return {
            "guildId": self.guild_id,
            "vouches": [v.to_dict() for v in self.vouches],
            "nextId": self.next_id,
            "vendors": [v.to_dict() for v in self.vendors],
            "items": list(self.items),
            "payments": list(self.payments),
            "products": [p.to_dict() for p in self.products],
            "lastLeaderboard": self.last_leaderboard.to_dict(),
            "lastProducts": self.last_products.to_dict(),
        }
