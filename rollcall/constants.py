"""
rollcall.constants — Shared Constants & Helpers
================================================

Single source of truth for setting keys, presentation constants, the
placeholder-name rule, and the points formula.  Import from here instead of
duplicating in cogs and services.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Setting keys (rows in the ``settings`` table)
# ---------------------------------------------------------------------------
STAFF_ROLE_KEY = "staff_role"
STAFF_CHANNEL_KEY = "staff_channel"
LEADERBOARD_CHANNEL_KEY = "leaderboard_channel"
MONITORED_CHANNELS_KEY = "monitored_channels"
STAGE_MOD_KEY = "stage_mod"
STAGE_MODE_KEY = "stage_mode"
PANEL_MESSAGE_KEY = "panel_message_id"

GUILD_SETTING_KEYS: tuple[str, ...] = (
    STAFF_ROLE_KEY,
    STAFF_CHANNEL_KEY,
    LEADERBOARD_CHANNEL_KEY,
    MONITORED_CHANNELS_KEY,
    STAGE_MOD_KEY,
    STAGE_MODE_KEY,
    PANEL_MESSAGE_KEY,
)

MAX_MONITORED_CHANNELS = 25

# Used when the monitored_channels setting is unset or blank
MONITORED_CHANNELS_ENV = "MONITORED_CHANNEL_IDS"

# ---------------------------------------------------------------------------
# Panel presentation
# ---------------------------------------------------------------------------
PANEL_TITLE = "Staff Attendance & Leaderboard"
PANEL_SCAN_LIMIT = 50

STATUS_EMOJI: dict[str, str] = {
    "active": "\U0001f7e2",        # 🟢
    "paused": "\u23f8\ufe0f",    # ⏸️
    "off": "\u26d4",              # ⛔
}

# ---------------------------------------------------------------------------
# Placeholder display names ("staff", "Staff2", ...)
# ---------------------------------------------------------------------------
_PLACEHOLDER_RE = re.compile(r"^staff\d*$", re.IGNORECASE)


def is_placeholder_name(name: str | None) -> bool:
    """True for empty names and auto-generated ``staff<N>`` names."""
    if name is None:
        return True
    stripped = str(name).strip()
    return not stripped or bool(_PLACEHOLDER_RE.match(stripped))


# ---------------------------------------------------------------------------
# Points formula — THE single canonical implementation
# ---------------------------------------------------------------------------
MESSAGES_PER_POINT = 100
STAGE_MINUTES_PER_POINT = 30


def compute_points(messages_count: int, minutes_on_stage: int) -> float:
    """Points for the given counters, rounded to 4 decimal places::

        points = messages / 100 + stage_minutes / 30
    """
    msgs = int(messages_count or 0)
    mins = int(minutes_on_stage or 0)
    return round(msgs / MESSAGES_PER_POINT + mins / STAGE_MINUTES_PER_POINT, 4)
