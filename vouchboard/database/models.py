"""
vouchboard.database.models — SQLAlchemy 2.0 Data Models
========================================================

Tables:
- guild_records — One document per Discord guild: vouches, reference lists,
                  product catalog and summary-message pointers
- oauth_states  — One-time OAuth ``state`` tokens (login CSRF guard)

The guild record is stored document-style: each list is a JSON column that
is rewritten as a whole on every mutation.  Row-level structure lives in
:mod:`vouchboard.engine.records`.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON everywhere else (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Vouchboard ORM models."""


# ---------------------------------------------------------------------------
# GuildRecordRow — one row per Discord guild
# ---------------------------------------------------------------------------
class GuildRecordRow(Base):
    __tablename__ = "guild_records"

    guild_id: Mapped[str] = mapped_column(String(32), primary_key=True)

    # Vouches
    vouches: Mapped[list] = mapped_column(JSONDocument, default=list)
    next_id: Mapped[int] = mapped_column(Integer, default=1)

    # Reference lists
    vendors: Mapped[list] = mapped_column(JSONDocument, default=list)
    items: Mapped[list] = mapped_column(JSONDocument, default=list)
    payments: Mapped[list] = mapped_column(JSONDocument, default=list)

    # Catalog
    products: Mapped[list] = mapped_column(JSONDocument, default=list)

    # Last posted summary messages: {"channelId": ..., "messageId": ...}
    last_leaderboard: Mapped[dict | None] = mapped_column(JSONDocument, default=None)
    last_products: Mapped[dict | None] = mapped_column(JSONDocument, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<GuildRecordRow guild={self.guild_id} "
            f"vouches={len(self.vouches or [])} next_id={self.next_id}>"
        )


# ---------------------------------------------------------------------------
# OAuthState — durable one-time login state tokens
# ---------------------------------------------------------------------------
class OAuthState(Base):
    __tablename__ = "oauth_states"

    state: Mapped[str] = mapped_column(String(128), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        index=True,
    )

    def __repr__(self) -> str:
        return f"<OAuthState created_at={self.created_at}>"
