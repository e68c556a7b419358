"""
rollcall.services.stage_service — Stage Session Tracker
========================================================

Per-member state machine::

    NoSession ──start──▶ Open ──end──▶ Closed (minutes folded into staff)

Starting while a session is already open returns the open session, so a
member never has two open sessions from this code path.  Ending with no
open session is a no-op.  Elapsed time is truncated to whole minutes.
"""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select

from rollcall.database.engine import get_session
from rollcall.database.models import StageSession
from rollcall.services.staff_service import add_to_counter, ensure_staff, recompute_in_session

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def _aware(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything here is UTC.
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


def elapsed_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between *start* and *end*, never negative."""
    seconds = (_aware(end) - _aware(start)).total_seconds()
    return max(0, math.floor(seconds / 60))


def _latest_open_session(session: Session, discord_id: int) -> StageSession | None:
    return session.scalar(
        select(StageSession)
        .where(StageSession.discord_id == discord_id, StageSession.end_at.is_(None))
        .order_by(StageSession.start_at.desc())
        .limit(1)
    )


def start_stage_session(
    engine: Engine, discord_id: int, now: datetime | None = None
) -> StageSession:
    """Open a Stage session for *discord_id* (or return the one already open)."""
    now = now or datetime.now(UTC)
    ensure_staff(engine, discord_id)

    with get_session(engine) as session:
        current = _latest_open_session(session, discord_id)
        if current is not None:
            logger.debug("Stage session %d already open for %s", current.id, discord_id)
            session.expunge(current)
            return current

        stage = StageSession(discord_id=discord_id, start_at=now)
        session.add(stage)
        session.flush()
        session.expunge(stage)

    logger.info("Stage session opened for %s", discord_id)
    return stage


def end_stage_session(
    engine: Engine, discord_id: int, now: datetime | None = None
) -> int | None:
    """Close the open session and credit its minutes.

    Returns the minutes credited, or ``None`` when nothing was open.
    Closing the session, crediting the minutes and recomputing points
    commit together: if the counter cannot be bumped the session stays
    open and the next stage leave credits it.
    """
    now = now or datetime.now(UTC)

    with get_session(engine) as session:
        current = _latest_open_session(session, discord_id)
        if current is None:
            return None
        minutes = elapsed_minutes(current.start_at, now)
        current.end_at = now
        add_to_counter(session, discord_id, "minutes_on_stage", minutes)
        recompute_in_session(session, discord_id)

    logger.info("Stage session closed for %s (+%d min)", discord_id, minutes)
    return minutes
