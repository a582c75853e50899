"""
vouchboard.services.reference_service — Vendors, items, payment methods
========================================================================

Admin-curated lists offered as choices in the vouch form.

- Vendors ``{id?, label}`` — duplicates allowed; removal by id or label.
- Items / payments — plain strings with set-like insertion; adding an
  existing name is a silent no-op.

Adds create the guild document when missing; removes raise
:class:`NotFoundError` when the document or the entry is missing.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine

from vouchboard.database.store import guild_transaction, load_record
from vouchboard.engine.records import Vendor
from vouchboard.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# list attribute → human label used in messages
_STRING_LISTS = {"items": "Item", "payments": "Payment method"}


def _require(value: str | None, message: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(message)
    return text


# ---------------------------------------------------------------------------
# Vendors
# ---------------------------------------------------------------------------
def add_vendor(
    engine: Engine, guild_id: str, label: str | None, vendor_id: str | None = None
) -> Vendor:
    """Append a vendor.  No uniqueness check on purpose: two sellers may
    share a display label."""
    label = _require(label, "Label is required.")
    vendor = Vendor(label=label, id=(vendor_id or "").strip() or None)
    with guild_transaction(engine, guild_id, create=True) as record:
        record.vendors.append(vendor)
    logger.info("Vendor %r (id=%s) added (guild %s)", vendor.label, vendor.id, guild_id)
    return vendor


def remove_vendor(engine: Engine, guild_id: str, key: str | None) -> Vendor:
    """Remove the first vendor whose id or label equals *key*."""
    key = _require(key, "Vendor key is missing.")
    with guild_transaction(engine, guild_id, create=False) as record:
        index = next(
            (
                i for i, v in enumerate(record.vendors)
                if (v.id is not None and str(v.id) == key) or v.label == key
            ),
            None,
        )
        if index is None:
            raise NotFoundError("Vendor not found.")
        removed = record.vendors.pop(index)
    logger.info("Vendor %r removed (guild %s)", removed.label, guild_id)
    return removed


# ---------------------------------------------------------------------------
# Items & payments — same contract, different list
# ---------------------------------------------------------------------------
def _add_name(engine: Engine, guild_id: str, attr: str, name: str | None) -> bool:
    name = _require(name, "Name is required.")
    with guild_transaction(engine, guild_id, create=True) as record:
        values: list[str] = getattr(record, attr)
        if name in values:
            return False
        values.append(name)
    logger.info("%s %r added (guild %s)", _STRING_LISTS[attr], name, guild_id)
    return True


def _remove_name(engine: Engine, guild_id: str, attr: str, name: str | None) -> None:
    name = _require(name, "Name is required.")
    with guild_transaction(engine, guild_id, create=False) as record:
        values: list[str] = getattr(record, attr)
        if name not in values:
            raise NotFoundError(f"{_STRING_LISTS[attr]} not found.")
        setattr(record, attr, [v for v in values if v != name])
    logger.info("%s %r removed (guild %s)", _STRING_LISTS[attr], name, guild_id)


def add_item(engine: Engine, guild_id: str, name: str | None) -> bool:
    """Returns ``False`` when the item already existed (no-op)."""
    return _add_name(engine, guild_id, "items", name)


def remove_item(engine: Engine, guild_id: str, name: str | None) -> None:
    _remove_name(engine, guild_id, "items", name)


def add_payment(engine: Engine, guild_id: str, name: str | None) -> bool:
    """Returns ``False`` when the payment method already existed (no-op)."""
    return _add_name(engine, guild_id, "payments", name)


def remove_payment(engine: Engine, guild_id: str, name: str | None) -> None:
    _remove_name(engine, guild_id, "payments", name)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_reference_lists(engine: Engine, guild_id: str) -> dict:
    record = load_record(engine, guild_id)
    if record is None:
        return {"vendors": [], "items": [], "payments": []}
    return {
        "vendors": [v.to_dict() for v in record.vendors],
        "items": list(record.items),
        "payments": list(record.payments),
    }
