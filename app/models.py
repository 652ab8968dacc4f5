from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

NOTE_STATUSES = ("active", "archived", "completed")

DEFAULT_THEME = {
    "backgroundColor": "#ffffff",
    "textColor": "#000000",
    "useGradient": False,
    "borderRadius": 8,
    "elevation": 4,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    notes = relationship("Note", back_populates="user", cascade="all, delete-orphan")


class Note(Base):
    __tablename__ = "notes"
    __table_args__ = (Index("ix_notes_user_order", "user_id", "order"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="active", server_default=text("'active'"))
    theme = Column(JSON, nullable=False, default=lambda: dict(DEFAULT_THEME))
    # Unique per user between ordering operations only. A range shift passes
    # through duplicate ranks, so no unique constraint on (user_id, order).
    order = Column(Integer, nullable=False, server_default=text("0"))
    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    user = relationship("User", back_populates="notes")
