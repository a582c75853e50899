"""
vouchboard.database.store — Guild record access
================================================

Every mutation of a guild document follows one pattern:

  1. Acquire the in-process lock for that guild id
  2. Load the row (``SELECT … FOR UPDATE`` where the dialect supports it)
  3. Hand the caller a :class:`GuildRecord` to mutate
  4. Write every list back and commit
  5. Release the lock

Writes to the same guild are therefore serialized inside one process, and
row locking covers multiple processes on PostgreSQL.  Reads take no lock.

SQLAlchemy failures are logged here with their context and re-raised as
:class:`~vouchboard.errors.StorageError`.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vouchboard.database.models import GuildRecordRow
from vouchboard.engine.records import (
    GuildRecord,
    MessagePointer,
    Product,
    Vendor,
    Vouch,
)
from vouchboard.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)

_guild_locks: dict[str, threading.Lock] = {}
_guild_locks_guard = threading.Lock()


def _guild_lock(guild_id: str) -> threading.Lock:
    with _guild_locks_guard:
        lock = _guild_locks.get(guild_id)
        if lock is None:
            lock = _guild_locks[guild_id] = threading.Lock()
        return lock


# ---------------------------------------------------------------------------
# Row <-> record conversion
# ---------------------------------------------------------------------------
def _vendor_from_raw(raw) -> Vendor:
    if isinstance(raw, str):
        return Vendor(label=raw)
    return Vendor.from_dict(raw)


def _row_to_record(row: GuildRecordRow) -> GuildRecord:
    return GuildRecord(
        guild_id=row.guild_id,
        vouches=[Vouch.from_dict(v) for v in row.vouches or []],
        next_id=row.next_id or 1,
        vendors=[_vendor_from_raw(v) for v in row.vendors or []],
        items=list(row.items or []),
        payments=list(row.payments or []),
        products=[Product.from_dict(p) for p in row.products or []],
        last_leaderboard=MessagePointer.from_dict(row.last_leaderboard),
        last_products=MessagePointer.from_dict(row.last_products),
    )


def _apply_record(record: GuildRecord, row: GuildRecordRow) -> None:
    """Copy *record* onto *row*.  Fresh lists so the JSON columns are dirty."""
    doc = record.to_dict()
    row.vouches = doc["vouches"]
    row.next_id = doc["nextId"]
    row.vendors = doc["vendors"]
    row.items = doc["items"]
    row.payments = doc["payments"]
    row.products = doc["products"]
    row.last_leaderboard = doc["lastLeaderboard"]
    row.last_products = doc["lastProducts"]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_record(engine: Engine, guild_id: str) -> GuildRecord | None:
    """Read-only fetch of a guild document.  ``None`` if it doesn't exist."""
    try:
        with Session(engine) as session:
            row = session.get(GuildRecordRow, guild_id)
            return _row_to_record(row) if row is not None else None
    except SQLAlchemyError as exc:
        logger.exception("Failed to load guild record %s", guild_id)
        raise StorageError("Failed to load guild record") from exc


@contextmanager
def guild_transaction(
    engine: Engine, guild_id: str, *, create: bool
) -> Iterator[GuildRecord]:
    """Locked read-modify-write of one guild document.

    Parameters
    ----------
    create:
        When ``True`` a missing document is created lazily; when ``False``
        a missing document raises :class:`NotFoundError`.

    The yielded record is persisted when the block exits normally.  Any
    exception inside the block discards the changes and propagates.
    """
    with _guild_lock(guild_id):
        session = Session(engine)
        try:
            row = session.get(GuildRecordRow, guild_id, with_for_update=True)
            if row is None:
                if not create:
                    raise NotFoundError("Guild record not found.")
                row = GuildRecordRow(guild_id=guild_id, next_id=1)
                session.add(row)
                logger.info("Created guild record %s", guild_id)

            record = _row_to_record(row)
            yield record

            _apply_record(record, row)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Storage failure while writing guild record %s", guild_id)
            raise StorageError("Failed to save guild record") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
