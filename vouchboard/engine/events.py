"""
vouchboard.engine.events — VouchEvent envelope
===============================================

Vouch mutations produce a :class:`VouchEvent` once persistence succeeded.
The API hands it to the notification relay; the relay is the only consumer,
so a failed webhook can never reach back into the mutation.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from vouchboard.engine.records import Vouch, now_ms

__all__ = ["VouchEvent", "VouchEventKind"]


class VouchEventKind(enum.StrEnum):
    CREATED = "vouch_created"
    DELETED = "vouch_deleted"


@dataclass(frozen=True, slots=True)
class VouchEvent:
    """One vouch mutation.

    ``vouch`` is the created vouch, or a snapshot of the deleted one taken
    before resequencing.  ``next_id`` is the counter after the mutation.
    """

    kind: VouchEventKind
    guild_id: str
    vouch: Vouch
    next_id: int
    timestamp: int = 0

    @classmethod
    def now(cls, kind: VouchEventKind, guild_id: str, vouch: Vouch, next_id: int) -> VouchEvent:
        return cls(kind=kind, guild_id=guild_id, vouch=vouch, next_id=next_id, timestamp=now_ms())
