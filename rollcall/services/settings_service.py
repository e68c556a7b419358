"""
rollcall.services.settings_service — Settings Accessor
=======================================================

Read/write access to the ``settings`` key-value table, plus
:func:`load_guild_settings`, which reads every attendance key in one query
and returns an immutable :class:`GuildSettings` snapshot.  Handlers load a
fresh snapshot per event instead of holding process-wide config.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from rollcall.constants import (
    GUILD_SETTING_KEYS,
    LEADERBOARD_CHANNEL_KEY,
    MONITORED_CHANNELS_ENV,
    MONITORED_CHANNELS_KEY,
    PANEL_MESSAGE_KEY,
    STAFF_CHANNEL_KEY,
    STAFF_ROLE_KEY,
    STAGE_MOD_KEY,
    STAGE_MODE_KEY,
)
from rollcall.database.engine import get_session
from rollcall.database.models import Setting, StageMode

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# GuildSettings — typed snapshot of the attendance configuration
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class GuildSettings:
    staff_role_id: int | None = None
    staff_channel_id: int | None = None
    leaderboard_channel_id: int | None = None
    monitored_channel_ids: tuple[int, ...] = ()
    stage_mod_id: int | None = None
    stage_mode: StageMode = StageMode.SINGLE
    panel_message_id: int | None = None

    @property
    def panel_channel_id(self) -> int | None:
        """Where the panel lives: staff channel, else leaderboard channel."""
        return self.staff_channel_id or self.leaderboard_channel_id


def parse_id(raw: str | None) -> int | None:
    """Parse a snowflake string.  Blank or non-numeric → ``None``."""
    if raw is None:
        return None
    raw = raw.strip()
    if not raw.isdigit():
        return None
    return int(raw)


def parse_id_list(raw: str | None) -> tuple[int, ...]:
    """Parse a comma-separated id list, dropping blanks, junk and repeats."""
    if not raw:
        return ()
    seen: dict[int, None] = {}
    for part in raw.split(","):
        value = parse_id(part)
        if value is not None:
            seen.setdefault(value, None)
    return tuple(seen)


_CHANNEL_TOKEN_RE = re.compile(r"^<#(\d+)>$")


def parse_channel_input(raw: str) -> tuple[tuple[int, ...], list[str]]:
    """Parse admin input like ``"123, <#456>, 789"``.

    Returns ``(channel_ids, rejected_tokens)``.  Channel mentions are
    accepted alongside bare ids; duplicates collapse.
    """
    ids: dict[int, None] = {}
    rejected: list[str] = []
    for token in re.split(r"[,\s]+", raw or ""):
        if not token:
            continue
        match = _CHANNEL_TOKEN_RE.match(token)
        value = int(match.group(1)) if match else parse_id(token)
        if value is None:
            rejected.append(token)
        else:
            ids.setdefault(value, None)
    return tuple(ids), rejected


def parse_stage_mode(raw: str | None) -> StageMode:
    try:
        return StageMode((raw or "").strip().lower())
    except ValueError:
        return StageMode.SINGLE


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_setting(engine, key: str) -> str | None:
    """Return the stored value for *key*, or ``None`` if the key is absent.

    A missing row is a normal result.  Any other database error propagates.
    """
    with Session(engine) as session:
        row = session.get(Setting, key)
        return row.value if row is not None else None


def load_guild_settings(engine) -> GuildSettings:
    """Read every attendance setting in a single query.

    An unset or blank ``monitored_channels`` falls back to the
    ``MONITORED_CHANNEL_IDS`` environment variable.
    """
    with Session(engine) as session:
        rows = session.execute(
            select(Setting.key, Setting.value).where(Setting.key.in_(GUILD_SETTING_KEYS))
        ).all()
    raw = {row.key: row.value for row in rows}

    return GuildSettings(
        staff_role_id=parse_id(raw.get(STAFF_ROLE_KEY)),
        staff_channel_id=parse_id(raw.get(STAFF_CHANNEL_KEY)),
        leaderboard_channel_id=parse_id(raw.get(LEADERBOARD_CHANNEL_KEY)),
        monitored_channel_ids=parse_id_list(
            raw.get(MONITORED_CHANNELS_KEY) or os.getenv(MONITORED_CHANNELS_ENV)
        ),
        stage_mod_id=parse_id(raw.get(STAGE_MOD_KEY)),
        stage_mode=parse_stage_mode(raw.get(STAGE_MODE_KEY)),
        panel_message_id=parse_id(raw.get(PANEL_MESSAGE_KEY)),
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def set_setting(engine, key: str, value: str) -> None:
    """Insert or update *key*.  ``updated_at`` is bumped on every call.

    The value is stored as given; callers validate ids and enums first.
    """
    now = datetime.now(UTC)
    with get_session(engine) as session:
        existing = session.get(Setting, key)
        if existing is None:
            session.add(Setting(key=key, value=value, updated_at=now))
        else:
            existing.value = value
            existing.updated_at = now
    logger.info("Setting %s updated", key)
