"""
rollcall.services.staff_service — Staff Ledger & Counter Updates
=================================================================

Owns the ``staff`` table: ensure-exists, status changes, message counting,
and the points recompute.  Counter bumps prefer a single server-side
``UPDATE ... SET col = col + n`` inside a SAVEPOINT; if that statement
fails they fall back to read-then-write in the same transaction, which can
lose an update when two bumps for the same member race.  That window is
accepted.

All engine-level functions are synchronous — call them through
:func:`~rollcall.database.engine.run_db` from async code.  The
``session``-level helpers let other services fold a counter bump into
their own transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from rollcall.constants import compute_points, is_placeholder_name
from rollcall.database.engine import get_session
from rollcall.database.models import MessageLog, StaffMember, StaffStatus

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

CounterColumn = Literal["messages_count", "minutes_on_stage"]


# ---------------------------------------------------------------------------
# StaffSnapshot — detached read model for the panel
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class StaffSnapshot:
    discord_id: int
    display_name: str | None
    status: StaffStatus
    messages_count: int
    minutes_on_stage: int
    points: float

    @classmethod
    def from_row(cls, row: StaffMember) -> StaffSnapshot:
        try:
            status = StaffStatus(row.status)
        except ValueError:
            status = StaffStatus.OFF
        return cls(
            discord_id=row.discord_id,
            display_name=row.display_name,
            status=status,
            messages_count=row.messages_count or 0,
            minutes_on_stage=row.minutes_on_stage or 0,
            points=float(row.points or 0),
        )


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------
def ensure_staff(engine: Engine, discord_id: int, display_name: str | None = None) -> None:
    """Make sure a ``staff`` row exists for *discord_id*.

    When the row already exists and *display_name* is a real name, it
    replaces a stored name that is empty or a placeholder (``staff``,
    ``Staff3``...).  A real stored name is never overwritten.

    Two handlers for the same member may both see "no row"; the loser's
    INSERT hits the primary key, its SAVEPOINT is rolled back, and the
    winner's row is re-read instead.
    """
    with get_session(engine) as session:
        staff = session.get(StaffMember, discord_id)
        if staff is None:
            try:
                with session.begin_nested():   # SAVEPOINT
                    session.add(StaffMember(discord_id=discord_id, display_name=display_name or None))
                    session.flush()
            except IntegrityError:
                logger.debug("Staff row for %s created concurrently; re-reading", discord_id)
                staff = session.get(StaffMember, discord_id, populate_existing=True)
            else:
                logger.info("Registered staff member %s (%s)", discord_id, display_name)
                return

        if staff is None:
            return
        if display_name and not is_placeholder_name(display_name) and is_placeholder_name(staff.display_name):
            logger.info(
                "Replacing placeholder name %r with %r for %s",
                staff.display_name, display_name, discord_id,
            )
            staff.display_name = display_name


def refresh_display_name(engine: Engine, discord_id: int, display_name: str | None) -> bool:
    """Store the member's current name on check-in.  Returns True if changed.

    Unlike :func:`ensure_staff` this overwrites a real name, so renamed
    members show up under their new name.  Placeholder names are ignored.
    """
    if not display_name or is_placeholder_name(display_name):
        return False
    name = display_name.strip()
    with get_session(engine) as session:
        result = session.execute(
            update(StaffMember)
            .where(StaffMember.discord_id == discord_id, StaffMember.display_name.is_distinct_from(name))
            .values(display_name=name)
        )
        changed = result.rowcount > 0
    if changed:
        logger.info("Display name for %s is now %r", discord_id, name)
    return changed


def set_status(engine: Engine, discord_id: int, status: StaffStatus | str) -> int:
    """Set the attendance status.  Returns the number of rows updated.

    No row is created here; call :func:`ensure_staff` first or the update
    silently touches nothing.
    """
    status = StaffStatus(status)
    with get_session(engine) as session:
        result = session.execute(
            update(StaffMember)
            .where(StaffMember.discord_id == discord_id)
            .values(status=status.value)
        )
        return result.rowcount


def get_status(engine: Engine, discord_id: int) -> StaffStatus:
    """Current status, ``off`` for members with no row."""
    with Session(engine) as session:
        raw = session.scalar(
            select(StaffMember.status).where(StaffMember.discord_id == discord_id)
        )
    if raw is None:
        return StaffStatus.OFF
    try:
        return StaffStatus(raw)
    except ValueError:
        return StaffStatus.OFF


def recompute_in_session(session: Session, discord_id: int) -> float | None:
    """Recompute and stage ``points`` inside an open transaction."""
    staff = session.get(StaffMember, discord_id, populate_existing=True)
    if staff is None:
        return None
    points = compute_points(staff.messages_count, staff.minutes_on_stage)
    staff.points = points
    return points


def recompute_points(engine: Engine, discord_id: int) -> float | None:
    """Recompute ``points`` from the counters and store it.

    Returns the new value, or ``None`` when the member has no row.
    """
    with get_session(engine) as session:
        return recompute_in_session(session, discord_id)


def get_leaderboard(engine: Engine, limit: int = 12) -> list[StaffSnapshot]:
    """Top *limit* members by points, highest first."""
    with Session(engine) as session:
        rows = session.scalars(
            select(StaffMember).order_by(StaffMember.points.desc()).limit(limit)
        ).all()
        return [StaffSnapshot.from_row(r) for r in rows]


def get_all_staff(engine: Engine) -> list[StaffSnapshot]:
    """Every staff row, ordered by display name."""
    with Session(engine) as session:
        rows = session.scalars(
            select(StaffMember).order_by(StaffMember.display_name, StaffMember.discord_id)
        ).all()
        return [StaffSnapshot.from_row(r) for r in rows]


# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------
def _atomic_increment(session: Session, discord_id: int, column: CounterColumn, amount: int) -> None:
    """``UPDATE staff SET <column> = <column> + amount`` in one statement."""
    col = getattr(StaffMember, column)
    session.execute(
        update(StaffMember)
        .where(StaffMember.discord_id == discord_id)
        .values({column: col + amount})
    )


def _read_modify_write(session: Session, discord_id: int, column: CounterColumn, amount: int) -> None:
    """Fallback increment.  Two concurrent calls may both read the same value."""
    staff = session.get(StaffMember, discord_id, populate_existing=True)
    if staff is None:
        return
    current = int(getattr(staff, column) or 0)
    setattr(staff, column, current + amount)
    session.flush()


def add_to_counter(session: Session, discord_id: int, column: CounterColumn, amount: int) -> None:
    """Add *amount* to a counter, atomic path first, read-then-write second.

    Runs inside the caller's transaction.  A failure of the fallback
    propagates and the caller's transaction rolls back.
    """
    try:
        with session.begin_nested():   # SAVEPOINT
            _atomic_increment(session, discord_id, column, amount)
    except SQLAlchemyError as exc:
        logger.warning(
            "Atomic %s increment failed for %s (%s); using read-modify-write",
            column, discord_id, exc,
        )
        _read_modify_write(session, discord_id, column, amount)


def _log_message(session: Session, discord_id: int, channel_id: int) -> None:
    """Append an audit row.  Failures are ignored."""
    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(MessageLog(discord_id=discord_id, channel_id=channel_id))
            session.flush()
    except SQLAlchemyError:
        logger.debug("Message log insert failed for %s", discord_id, exc_info=True)


def increment_message_count(engine: Engine, discord_id: int, channel_id: int) -> float | None:
    """Count one message for *discord_id* and return the recomputed points.

    The counter bump, the audit row and the points recompute commit
    together.
    """
    ensure_staff(engine, discord_id)
    with get_session(engine) as session:
        add_to_counter(session, discord_id, "messages_count", 1)
        _log_message(session, discord_id, channel_id)
        return recompute_in_session(session, discord_id)
