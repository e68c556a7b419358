"""
rollcall.bot.cogs.attendance — Panel Buttons & Periodic Refresh
================================================================

Handles presses on the panel's Check-in / Pause / Resume / End buttons and
keeps the panel fresh:

1. Button press → staff-role check (ephemeral rejection on failure)
2. ``ensure_staff`` with the presser's display name (Check-in also stores
   their current name), then ``set_status``
3. Ephemeral confirmation, then a panel refresh request
4. A ``tasks.loop`` requests a refresh every ``refresh_interval_seconds``
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands, tasks

from rollcall.bot.views import ACTION_STATUS, PanelAction, PanelView
from rollcall.database.engine import run_db
from rollcall.engine.access import is_authorized, role_ids_of
from rollcall.services.settings_service import load_guild_settings
from rollcall.services.staff_service import ensure_staff, refresh_display_name, set_status

if TYPE_CHECKING:
    from rollcall.bot.core import RollcallBot

logger = logging.getLogger(__name__)

ACTION_REPLIES: dict[PanelAction, str] = {
    PanelAction.CHECKIN: "✅ You're checked in as **{name}**. Your messages and stage time now count.",
    PanelAction.PAUSE: "⏸️ Paused. Counting is on hold until you resume.",
    PanelAction.RESUME: "▶️ Resumed. Counting is back on.",
    PanelAction.END: "⛔ You're off. Counting has stopped.",
}

STAFF_ONLY = "❌ Only staff can use these buttons."
FAILURE = "⚠️ Something went wrong updating your status. Please try again."


class Attendance(commands.Cog, name="Attendance"):
    """Attendance buttons and the periodic panel refresh."""

    def __init__(self, bot: RollcallBot) -> None:
        self.bot = bot
        self.view: PanelView | None = None

    async def cog_load(self) -> None:
        """Register the persistent view and start the refresh loop."""
        self.view = PanelView(self.handle_action)
        self.bot.add_view(self.view)
        self.bot.panel_view = self.view

        self.panel_refresh_loop.change_interval(seconds=self.bot.cfg.refresh_interval_seconds)
        self.panel_refresh_loop.start()

    async def cog_unload(self) -> None:
        self.panel_refresh_loop.cancel()
        if self.view is not None:
            self.view.stop()

    # -------------------------------------------------------------------
    # Buttons
    # -------------------------------------------------------------------
    async def handle_action(self, interaction: discord.Interaction, action: PanelAction) -> None:
        """Entry point for every panel button press."""
        logger.info(
            "Panel button %s pressed by %s (%s)",
            action.value, interaction.user, interaction.user.id,
        )
        try:
            await self._handle_action(interaction, action)
        except Exception:
            logger.exception(
                "Error handling %s button for user %s", action.value, interaction.user.id,
            )
            await self._notify_failure(interaction)

    async def _handle_action(self, interaction: discord.Interaction, action: PanelAction) -> None:
        user = interaction.user
        settings = await run_db(load_guild_settings, self.bot.engine)

        if not is_authorized(role_ids_of(user), settings.staff_role_id):
            logger.info("Rejected %s button from non-staff %s", action.value, user.id)
            await interaction.response.send_message(STAFF_ONLY, ephemeral=True)
            return

        await run_db(ensure_staff, self.bot.engine, user.id, user.display_name)
        if action is PanelAction.CHECKIN:
            await run_db(refresh_display_name, self.bot.engine, user.id, user.display_name)
        await run_db(set_status, self.bot.engine, user.id, ACTION_STATUS[action])

        await interaction.response.send_message(
            ACTION_REPLIES[action].format(name=user.display_name), ephemeral=True,
        )
        self.bot.refresher.request()

    async def _notify_failure(self, interaction: discord.Interaction) -> None:
        """Tell the user once; stay quiet if a response already went out."""
        if interaction.response.is_done():
            return
        try:
            await interaction.response.send_message(FAILURE, ephemeral=True)
        except discord.HTTPException:
            logger.warning("Could not send failure notice to %s", interaction.user.id)

    # -------------------------------------------------------------------
    # Periodic refresh
    # -------------------------------------------------------------------
    @tasks.loop(seconds=30)
    async def panel_refresh_loop(self) -> None:
        """Ask the refresh worker to re-render the panel."""
        self.bot.refresher.request()

    @panel_refresh_loop.before_loop
    async def _wait_panel_refresh(self) -> None:
        await self.bot.wait_until_ready()


async def setup(bot: RollcallBot) -> None:
    await bot.add_cog(Attendance(bot))
