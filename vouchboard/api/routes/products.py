"""
vouchboard.api.routes.products — Product catalog endpoints (admin)
===================================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel
from sqlalchemy import Engine

from vouchboard.api.deps import get_config, get_engine, require_admin
from vouchboard.config import VouchboardConfig
from vouchboard.database.engine import run_db
from vouchboard.errors import VouchboardError
from vouchboard.services import product_service
from vouchboard.services.upload_service import delete_upload, save_upload

router = APIRouter(
    prefix="/api/product",
    tags=["products"],
    dependencies=[Depends(require_admin)],
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ProductUpdate(BaseModel):
    name: str | None = None
    price: str | float | None = None
    description: str | None = None
    image: str | None = None


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------
@router.post("")
async def create_product(
    name: str | None = Form(None),
    price: str | None = Form(None),
    description: str | None = Form(None),
    image: str | None = Form(None),
    file: UploadFile | None = File(None),
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
):
    """Create a product.  An uploaded ``file`` takes precedence over an
    ``image`` URL."""
    stored_path = None
    if file is not None and file.filename:
        content = await file.read()
        stored_path = await save_upload(file.filename, content, file.content_type)
        image = stored_path

    try:
        product = await run_db(
            product_service.create_product,
            engine,
            cfg.guild_id,
            name=name,
            price=price,
            description=description,
            image=image,
        )
    except VouchboardError:
        if stored_path:
            try:
                delete_upload(stored_path)
            except OSError:
                logger.warning("Could not remove orphaned upload %s", stored_path, exc_info=True)
        raise
    return {"ok": True, "id": product.id}


@router.put("/{product_id}")
async def update_product(
    product_id: int,
    body: ProductUpdate,
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
):
    """Shallow update: only the fields present in the body change."""
    changes = body.model_dump(exclude_unset=True)
    await run_db(product_service.update_product, engine, cfg.guild_id, product_id, changes)
    return {"ok": True}


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
):
    await run_db(product_service.delete_product, engine, cfg.guild_id, product_id)
    return {"ok": True}
