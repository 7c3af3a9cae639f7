"""
hundy.database.models - SQLAlchemy 2.0 Data Models
===================================================

Hundy keeps its state as a handful of named JSON documents (the XP ledger,
the voice-session map, the ticket registry, verified accounts, and the
banned-word list).  Each document is one row in ``documents``; the
``revision`` column backs compare-and-swap writes so two writers can never
silently overwrite each other.

Tables:
- documents: one whole JSON document per name
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Hundy ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class DocumentName(enum.StrEnum):
    """Every document the bot persists."""
    XP = "xp"
    VC_CHANNELS = "vc_channels"
    TICKETS = "tickets"
    VERIFIED_USERS = "verified_users"
    BANNED_WORDS = "banned_words"


# ---------------------------------------------------------------------------
# documents
# ---------------------------------------------------------------------------
class Document(Base):
    """A named JSON document, object-keyed by identity string."""

    __tablename__ = "documents"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    body: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Document {self.name} rev={self.revision}>"
