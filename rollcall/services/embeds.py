"""
rollcall.services.embeds — Panel embed builder
================================================

All embed construction lives here so the panel service only supplies data.
"""

from __future__ import annotations

from collections.abc import Sequence

import discord

from rollcall.constants import (
    MESSAGES_PER_POINT,
    PANEL_TITLE,
    STAGE_MINUTES_PER_POINT,
    STATUS_EMOJI,
    is_placeholder_name,
)
from rollcall.database.models import StaffStatus
from rollcall.services.staff_service import StaffSnapshot

EMPTY_LEADERBOARD = "_No leaderboard data yet._"
EMPTY_STATUS = "\u2014"

# Discord embed limits
_DESCRIPTION_LIMIT = 4096
_FIELD_LIMIT = 1024


def progress_bar(fraction: float, length: int = 10) -> str:
    """Ten-segment bar for the fractional part of a points value."""
    clamped = max(0.0, min(1.0, fraction))
    filled = round(clamped * length)
    return "▰" * filled + "▱" * (length - filled)


def clip(text: str, limit: int) -> str:
    """Trim *text* to *limit* characters, ending on a whole line."""
    if len(text) <= limit:
        return text
    cut = text[: limit - 2].rsplit("\n", 1)[0]
    return cut + "\n…"


def format_leaderboard(rows: Sequence[StaffSnapshot]) -> str:
    """Ranked entries, or the explicit empty-state text."""
    if not rows:
        return EMPTY_LEADERBOARD

    entries = []
    for pos, row in enumerate(rows, start=1):
        name = (
            f"<@{row.discord_id}>"
            if is_placeholder_name(row.display_name)
            else f"**{row.display_name.strip()}**"
        )
        pts = float(row.points or 0)
        bar = progress_bar(pts - int(pts))
        entries.append(
            f"`{pos:>2}.` {name}\n"
            f"• **{pts:.2f} pts** {bar}\n"
            f"• msgs: {row.messages_count} • mins: {row.minutes_on_stage}"
        )
    return "\n\n".join(entries)


def format_status_list(staff: Sequence[StaffSnapshot], status: StaffStatus) -> str:
    """One ``<emoji> name`` line per member in *status*; placeholders skipped."""
    emoji = STATUS_EMOJI[status.value]
    names = [
        s.display_name.strip()
        for s in staff
        if s.status is status and not is_placeholder_name(s.display_name)
    ]
    if not names:
        return EMPTY_STATUS
    return "\n".join(f"{emoji} {n}" for n in names)


def build_panel_embed(
    leaderboard: Sequence[StaffSnapshot],
    staff: Sequence[StaffSnapshot],
    *,
    guild_name: str | None = None,
    icon_url: str | None = None,
    color: int = 0x00CF91,
    refresh_interval_seconds: int = 30,
) -> discord.Embed:
    """Build the attendance panel: leaderboard plus Active / Paused / Off."""
    header = (
        f"**Live leaderboard** · {MESSAGES_PER_POINT} msgs = 1 pt · "
        f"{STAGE_MINUTES_PER_POINT} mins on stage = 1 pt\n"
        "Use the buttons below to check in or change your status."
    )
    board = format_leaderboard(leaderboard)

    embed = discord.Embed(
        title=PANEL_TITLE,
        description=clip(f"{header}\n\n__Top {len(leaderboard)}__\n{board}", _DESCRIPTION_LIMIT),
        color=discord.Color(color),
        timestamp=discord.utils.utcnow(),
    )
    author = f"{guild_name} · Staff Panel" if guild_name else "Staff Panel"
    embed.set_author(name=author, icon_url=icon_url or None)

    for label, status in (
        ("Active", StaffStatus.ACTIVE),
        ("Paused", StaffStatus.PAUSED),
        ("Off", StaffStatus.OFF),
    ):
        embed.add_field(
            name=label,
            value=clip(format_status_list(staff, status), _FIELD_LIMIT),
            inline=True,
        )

    embed.set_footer(text=f"Refreshes automatically every {refresh_interval_seconds} seconds.")
    return embed
