"""
rollcall.database.models — SQLAlchemy 2.0 Data Models
======================================================

Tables:
- settings        — Admin-configurable key-value store
- staff           — One row per tracked staff member (counters + status)
- message_logs    — Append-only, best-effort audit of counted messages
- stage_sessions  — Open/closed intervals of Stage channel presence
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Rollcall ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class StaffStatus(enum.StrEnum):
    """Attendance state of a staff member."""
    ACTIVE = "active"
    PAUSED = "paused"
    OFF = "off"


class StageMode(enum.StrEnum):
    """Who gets timed on Stage channels."""
    SINGLE = "single"   # only the configured stage moderator
    ROLE = "role"       # anyone holding the staff role


# ---------------------------------------------------------------------------
# Setting — admin-configurable key-value store
# ---------------------------------------------------------------------------
class Setting(Base):
    """Key-value configuration store.

    Role and channel ids, the stage mode, and the panel message id live
    here so admins can change them with ``/setup`` without a redeploy.
    Values are plain strings; typed access goes through
    :func:`~rollcall.services.settings_service.load_guild_settings`.
    """
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Setting key={self.key!r}>"


# ---------------------------------------------------------------------------
# StaffMember — one row per tracked Discord member
# ---------------------------------------------------------------------------
class StaffMember(Base):
    __tablename__ = "staff"

    discord_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    display_name: Mapped[str | None] = mapped_column(String(100), default=None)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=StaffStatus.OFF.value,
        server_default=StaffStatus.OFF.value,
    )
    messages_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    minutes_on_stage: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    points: Mapped[float] = mapped_column(
        Numeric(12, 4, asdecimal=False), nullable=False, default=0.0, server_default="0"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_staff_points_desc", points.desc()),
        Index("ix_staff_status", "status"),
        CheckConstraint("messages_count >= 0", name="ck_staff_messages_nonneg"),
        CheckConstraint("minutes_on_stage >= 0", name="ck_staff_minutes_nonneg"),
    )

    def __repr__(self) -> str:
        return (
            f"<StaffMember id={self.discord_id} name={self.display_name!r} "
            f"status={self.status} pts={self.points}>"
        )


# ---------------------------------------------------------------------------
# MessageLog — append-only audit of counted messages
# ---------------------------------------------------------------------------
class MessageLog(Base):
    __tablename__ = "message_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    discord_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    channel_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_message_logs_user_time", "discord_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<MessageLog id={self.id} user={self.discord_id} channel={self.channel_id}>"


# ---------------------------------------------------------------------------
# StageSession — one interval of Stage channel presence
# ---------------------------------------------------------------------------
class StageSession(Base):
    """A Stage visit.  ``end_at`` is NULL while the session is open.

    At most one open session per member is kept by
    :func:`~rollcall.services.stage_service.start_stage_session`; the
    database does not enforce it.
    """
    __tablename__ = "stage_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    discord_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_stage_sessions_user_start", "discord_id", start_at.desc()),
    )

    @property
    def is_open(self) -> bool:
        return self.end_at is None

    def __repr__(self) -> str:
        return (
            f"<StageSession id={self.id} user={self.discord_id} "
            f"start={self.start_at} end={self.end_at}>"
        )
