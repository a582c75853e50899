"""
vouchboard.api.routes.pages — Read-only page data
==================================================

The site's pages, served as JSON view models for the front-end.  Pages
are member-only; a visitor without a principal is redirected to the login
route by the ``UnauthenticatedError`` handler in :mod:`vouchboard.api.main`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import Engine

from vouchboard.api.deps import (
    get_config,
    get_engine,
    get_principal,
    require_admin,
    require_authenticated,
)
from vouchboard.api.identity import Principal
from vouchboard.config import VouchboardConfig
from vouchboard.database.engine import run_db
from vouchboard.services import product_service, reference_service, vouch_service

router = APIRouter(tags=["pages"])


@router.get("/")
def home(
    principal: Principal | None = Depends(get_principal),
    cfg: VouchboardConfig = Depends(get_config),
):
    return {
        "title": cfg.community_name,
        "user": principal.to_dict() if principal else None,
    }


@router.get("/vouches")
async def vouches_page(
    principal: Principal = Depends(require_authenticated),
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
):
    """All vouches, newest first, plus the choices for the vouch form."""
    vouches = await run_db(vouch_service.list_vouches, engine, cfg.guild_id)
    lists = await run_db(reference_service.get_reference_lists, engine, cfg.guild_id)
    return {"user": principal.to_dict(), "vouches": vouches, **lists}


@router.get("/leaderboard")
async def leaderboard_page(
    principal: Principal = Depends(require_authenticated),
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
):
    rows = await run_db(vouch_service.get_leaderboard, engine, cfg.guild_id)
    return {"user": principal.to_dict(), "rows": [r.to_dict() for r in rows]}


@router.get("/config")
async def config_page(
    admin: Principal = Depends(require_admin),
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
):
    lists = await run_db(reference_service.get_reference_lists, engine, cfg.guild_id)
    return {"user": admin.to_dict(), "guildId": cfg.guild_id, **lists}


@router.get("/products")
async def products_page(
    principal: Principal = Depends(require_authenticated),
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
):
    products = await run_db(product_service.list_products, engine, cfg.guild_id)
    return {"user": principal.to_dict(), "products": products}
