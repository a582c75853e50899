"""
vouchboard.api.routes.vouches — Vouch create/delete endpoints
==============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy import Engine

from vouchboard.api.deps import get_config, get_engine, get_relay, require_admin, require_authenticated
from vouchboard.api.identity import Principal
from vouchboard.config import VouchboardConfig
from vouchboard.database.engine import run_db
from vouchboard.services import vouch_service
from vouchboard.services.notification_service import NotificationRelay

router = APIRouter(prefix="/api", tags=["vouches"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class VouchCreate(BaseModel):
    # The French form posts "vendeur"; both spellings are accepted.
    vendor: str | int | None = Field(
        default=None, validation_alias=AliasChoices("vendor", "vendeur")
    )
    note: str | int | float | None = None
    item: str | None = None
    qty: str | int | None = None
    price: str | int | float | None = None
    payment: str | None = None
    comment: str | None = None
    anonymous: bool = False


# ---------------------------------------------------------------------------
# Vouches
# ---------------------------------------------------------------------------
@router.post("/vouch")
async def create_vouch(
    body: VouchCreate,
    principal: Principal = Depends(require_authenticated),
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
    relay: NotificationRelay = Depends(get_relay),
):
    """Submit a vouch as the current member."""
    result = await run_db(
        vouch_service.create_vouch,
        engine,
        cfg.guild_id,
        vendor=body.vendor,
        note=body.note,
        item=body.item,
        qty=body.qty,
        price=body.price,
        payment=body.payment,
        comment=body.comment,
        anonymous=body.anonymous,
        author_id=principal.id,
        author_tag=principal.display_name,
        author_avatar=principal.avatar_url,
    )
    relay.publish(result.event)
    return {
        "ok": True,
        "message": "Vouch created.",
        "id": result.vouch_id,
        "nextId": result.next_id,
    }


@router.delete("/vouch/{vouch_id}")
async def delete_vouch(
    vouch_id: int,
    admin: Principal = Depends(require_admin),
    engine: Engine = Depends(get_engine),
    cfg: VouchboardConfig = Depends(get_config),
    relay: NotificationRelay = Depends(get_relay),
):
    """Delete a vouch; the remaining vouches are renumbered."""
    result = await run_db(vouch_service.delete_vouch, engine, cfg.guild_id, vouch_id)
    relay.publish(result.event)
    return {"ok": True, "message": "Vouch deleted.", "nextId": result.next_id}
