"""
vouchboard.api.routes.config — Reference list endpoints (admin)
================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import Engine

from vouchboard.api.deps import get_config, get_engine, require_admin
from vouchboard.config import VouchboardConfig
from vouchboard.database.engine import run_db
from vouchboard.services import reference_service

router = APIRouter(
    prefix="/api/config",
    tags=["config"],
    dependencies=[Depends(require_admin)],
)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class VendorAdd(BaseModel):
    label: str | None = None
    id: str | int | None = None


class VendorRemove(BaseModel):
    key: str | int | None = None


class NamedEntry(BaseModel):
    name: str | None = None


def _str(value: str | int | None) -> str | None:
    return None if value is None else str(value)


# ---------------------------------------------------------------------------
# Vendors
# ---------------------------------------------------------------------------
@router.post("/vendor/add")
async def add_vendor(
    body: VendorAdd,
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
):
    await run_db(reference_service.add_vendor, engine, cfg.guild_id, body.label, _str(body.id))
    return {"ok": True}


@router.post("/vendor/remove")
async def remove_vendor(
    body: VendorRemove,
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
):
    await run_db(reference_service.remove_vendor, engine, cfg.guild_id, _str(body.key))
    return {"ok": True, "message": "Vendor removed."}


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------
@router.post("/item/add")
async def add_item(
    body: NamedEntry,
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
):
    await run_db(reference_service.add_item, engine, cfg.guild_id, body.name)
    return {"ok": True}


@router.post("/item/remove")
async def remove_item(
    body: NamedEntry,
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
):
    await run_db(reference_service.remove_item, engine, cfg.guild_id, body.name)
    return {"ok": True, "message": "Item removed."}


# ---------------------------------------------------------------------------
# Payment methods
# ---------------------------------------------------------------------------
@router.post("/payment/add")
async def add_payment(
    body: NamedEntry,
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
):
    await run_db(reference_service.add_payment, engine, cfg.guild_id, body.name)
    return {"ok": True}


@router.post("/payment/remove")
async def remove_payment(
    body: NamedEntry,
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
):
    await run_db(reference_service.remove_payment, engine, cfg.guild_id, body.name)
    return {"ok": True, "message": "Payment method removed."}
