"""
vouchboard.services.product_service — Product catalog
======================================================

Admin CRUD over the guild's product list plus the maintenance repair pass.
Image files are handled by :mod:`vouchboard.services.upload_service`; the
route saves an upload first and passes the resulting path in as ``image``.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import Engine

from vouchboard.database.store import guild_transaction, load_record
from vouchboard.engine.products import (
    merge_product,
    next_product_id,
    parse_price,
    repair_products,
)
from vouchboard.engine.records import Product, now_ms
from vouchboard.errors import NotFoundError, ValidationError
from vouchboard.services.upload_service import delete_upload, is_stored_upload

logger = logging.getLogger(__name__)


def _discard_image(image: str | None, product_id: int) -> None:
    """Best-effort removal of a stored image the product no longer uses."""
    if not is_stored_upload(image):
        return
    try:
        delete_upload(image)
    except OSError:
        logger.warning(
            "Could not remove image %s of product #%d", image, product_id, exc_info=True,
        )


def create_product(
    engine: Engine,
    guild_id: str,
    *,
    name: str | None,
    price: Any = None,
    description: str | None = None,
    image: str | None = None,
) -> Product:
    """Append a product with id ``max(ids) + 1``."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required.")

    with guild_transaction(engine, guild_id, create=True) as record:
        product = Product(
            id=next_product_id(record.products),
            name=name,
            price=parse_price(price),
            description=(description or "").strip(),
            image=(image or "").strip() or None,
            created_at=now_ms(),
        )
        record.products.append(product)

    logger.info("Product #%d %r created (guild %s)", product.id, product.name, guild_id)
    return product


def update_product(
    engine: Engine, guild_id: str, product_id: int, changes: Mapping[str, Any]
) -> Product:
    """Shallow-merge *changes* over product *product_id*.

    Keys absent from *changes* keep their stored value.  A stored image
    file that the update replaces is removed.
    """
    with guild_transaction(engine, guild_id, create=False) as record:
        product = record.find_product(product_id)
        if product is None:
            raise NotFoundError("Product not found.")
        previous_image = product.image
        merge_product(product, changes)
        updated = dataclasses.replace(product)

    if updated.image != previous_image:
        _discard_image(previous_image, product_id)
    logger.info("Product #%d updated (guild %s): %s", product_id, guild_id, sorted(changes))
    return updated


def delete_product(engine: Engine, guild_id: str, product_id: int) -> Product:
    """Remove product *product_id*; its stored image file goes too.

    Failing to remove the file is logged and does not fail the delete.
    """
    with guild_transaction(engine, guild_id, create=False) as record:
        product = record.find_product(product_id)
        if product is None:
            raise NotFoundError("Product not found.")
        record.products = [p for p in record.products if p.id != product_id]

    _discard_image(product.image, product_id)
    logger.info("Product #%d deleted (guild %s)", product_id, guild_id)
    return product


def list_products(engine: Engine, guild_id: str) -> list[dict]:
    record = load_record(engine, guild_id)
    return [p.to_dict() for p in record.products] if record else []


def repair_guild_products(engine: Engine, guild_id: str) -> tuple[int, int]:
    """Run :func:`repair_products` over the stored catalog.

    Returns ``(count_before, count_after)``.

    Raises
    ------
    NotFoundError
        If the guild document doesn't exist.
    """
    with guild_transaction(engine, guild_id, create=False) as record:
        before = len(record.products)
        record.products = repair_products(record.products, now=now_ms())
        after = len(record.products)

    logger.info("Repaired products for guild %s: %d → %d", guild_id, before, after)
    return before, after
