from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, Index, String, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from internal_chat.infrastructure.db.base import Base


class RoomModel(Base):
    __tablename__ = "internal_chat_rooms"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)  # general | team | direct
    canonical_key: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    team_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )

    # relationships
    memberships = relationship(
        "MembershipModel", back_populates="room", lazy="noload", cascade="all, delete-orphan",
    )
    messages = relationship(
        "MessageModel", back_populates="room", lazy="noload", cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("account_id", "canonical_key", name="uq_internal_chat_room_key"),
        Index("ix_internal_chat_rooms_team", "team_id"),
    )
