"""
rollcall.bot.views — Persistent panel buttons
==============================================

Four buttons with fixed ``custom_id`` values and no timeout, registered
with ``bot.add_view`` so presses on an old panel message still route here
after a restart.  The view only forwards presses; the Attendance cog owns
the logic.
"""

from __future__ import annotations

import enum
from collections.abc import Awaitable, Callable

import discord

from rollcall.database.models import StaffStatus


class PanelAction(enum.StrEnum):
    CHECKIN = "checkin"
    PAUSE = "pause"
    RESUME = "resume"
    END = "end"


ACTION_STATUS: dict[PanelAction, StaffStatus] = {
    PanelAction.CHECKIN: StaffStatus.ACTIVE,
    PanelAction.PAUSE: StaffStatus.PAUSED,
    PanelAction.RESUME: StaffStatus.ACTIVE,
    PanelAction.END: StaffStatus.OFF,
}

ActionHandler = Callable[[discord.Interaction, PanelAction], Awaitable[None]]


class PanelView(discord.ui.View):
    """Check-in / Pause / Resume / End controls."""

    def __init__(self, handler: ActionHandler) -> None:
        super().__init__(timeout=None)
        self._handler = handler

    @discord.ui.button(
        label="Check-in", emoji="\U0001f7e2",
        style=discord.ButtonStyle.success, custom_id="rollcall:checkin",
    )
    async def checkin(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self._handler(interaction, PanelAction.CHECKIN)

    @discord.ui.button(
        label="Pause", emoji="\u23f8\ufe0f",
        style=discord.ButtonStyle.secondary, custom_id="rollcall:pause",
    )
    async def pause(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self._handler(interaction, PanelAction.PAUSE)

    @discord.ui.button(
        label="Resume", emoji="\u25b6\ufe0f",
        style=discord.ButtonStyle.primary, custom_id="rollcall:resume",
    )
    async def resume(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self._handler(interaction, PanelAction.RESUME)

    @discord.ui.button(
        label="End", emoji="\u26d4",
        style=discord.ButtonStyle.danger, custom_id="rollcall:end",
    )
    async def end(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self._handler(interaction, PanelAction.END)
