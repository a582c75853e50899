"""
vouchboard.engine.products — Catalog id assignment & repair
============================================================

Pure functions over :class:`~vouchboard.engine.records.Product` lists.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from vouchboard.engine.records import Product
from vouchboard.errors import ValidationError

__all__ = [
    "DEFAULT_PRODUCT_NAME",
    "merge_product",
    "next_product_id",
    "parse_price",
    "repair_products",
]

DEFAULT_PRODUCT_NAME = "Unnamed product"

# Fields an update may touch; id and createdAt are frozen.
_MERGEABLE = ("name", "price", "description", "image")


def parse_price(value: Any) -> float | None:
    """Number or ``None`` when absent/unparsable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if math.isfinite(price) else None


def next_product_id(products: Iterable[Product]) -> int:
    """``max(existing ids, default 0) + 1``.  Entries without an id are ignored."""
    return int(max((p.id for p in products if p.id is not None), default=0)) + 1


def merge_product(product: Product, changes: Mapping[str, Any]) -> Product:
    """Shallow-merge *changes* onto *product* in place.

    Only keys present in *changes* are applied.  A provided name must not
    be blank; a provided price goes through :func:`parse_price`.
    """
    for key in _MERGEABLE:
        if key not in changes:
            continue
        value = changes[key]
        if key == "name":
            name = str(value or "").strip()
            if not name:
                raise ValidationError("Name is required.")
            product.name = name
        elif key == "price":
            product.price = parse_price(value)
        else:
            setattr(product, key, value)
    return product


def repair_products(products: Iterable[Product], now: int) -> list[Product]:
    """Normalize possibly corrupt catalog entries.

    1. Keep a numeric id; otherwise assign ``index + 1``.
    2. Strip ``name``/``description``/``image`` (name falls back to
       :data:`DEFAULT_PRODUCT_NAME`), coerce ``price`` to a number (0 when
       unparsable), stamp a missing ``created_at`` with *now*.
    3. Drop later entries whose id was already seen.

    Idempotent: repairing a repaired list returns an equal list.
    """
    fixed = [
        Product(
            id=p.id if p.id is not None else index + 1,
            name=str(p.name or "").strip() or DEFAULT_PRODUCT_NAME,
            price=parse_price(p.price) or 0,
            description=str(p.description or "").strip(),
            image=str(p.image or "").strip(),
            created_at=p.created_at or now,
        )
        for index, p in enumerate(products)
    ]

    seen: set[int | float] = set()
    result: list[Product] = []
    for product in fixed:
        if product.id in seen:
            continue
        seen.add(product.id)
        result.append(product)
    return result
