"""
rollcall.bot.cogs.stage — Stage Time Tracking
==============================================

Opens a stage session when a tracked member enters a Stage channel and
closes it (crediting whole minutes) when they leave.  Who is tracked
depends on the ``stage_mode`` setting:

- ``single`` — only the member stored in ``stage_mod``
- ``role``   — any member holding ``staff_role``
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from rollcall.database.engine import run_db
from rollcall.database.models import StageMode
from rollcall.engine.access import role_ids_of
from rollcall.engine.stage import is_tracked_member, stage_transition
from rollcall.services.settings_service import load_guild_settings
from rollcall.services.stage_service import end_stage_session, start_stage_session

if TYPE_CHECKING:
    from rollcall.bot.core import RollcallBot

logger = logging.getLogger(__name__)


class Stage(commands.Cog, name="Stage"):
    """Times tracked members on Stage channels."""

    def __init__(self, bot: RollcallBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        logger.debug(
            "Gateway event: VOICE_STATE %s (%s → %s)",
            member.name,
            getattr(before.channel, "name", "None"),
            getattr(after.channel, "name", "None"),
        )
        try:
            await self._handle_voice_update(member, before, after)
        except Exception:
            logger.exception("Error processing voice state update for user %s", member.id)

    async def _resolve_member(self, member: discord.Member) -> discord.Member | None:
        """Full member with roles: guild cache first, API fetch second."""
        guild = member.guild
        cached = guild.get_member(member.id)
        if cached is not None:
            return cached
        try:
            return await guild.fetch_member(member.id)
        except discord.NotFound:
            return None

    async def _handle_voice_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        if member.bot:
            return

        transition = stage_transition(before.channel, after.channel)
        if transition.is_noop:
            return

        settings = await run_db(load_guild_settings, self.bot.engine)
        if settings.stage_mode is StageMode.ROLE:
            if settings.staff_role_id is None:
                return
            resolved = await self._resolve_member(member)
            if resolved is None:
                return
            member = resolved

        if not is_tracked_member(
            settings.stage_mode,
            member.id,
            role_ids_of(member),
            stage_mod_id=settings.stage_mod_id,
            staff_role_id=settings.staff_role_id,
        ):
            return

        if transition.end:
            minutes = await run_db(end_stage_session, self.bot.engine, member.id)
            if minutes is not None:
                logger.info("%s left the stage (+%d min)", member, minutes)
        if transition.start:
            await run_db(start_stage_session, self.bot.engine, member.id)
            logger.info("%s went on stage in %s", member, after.channel)


async def setup(bot: RollcallBot) -> None:
    await bot.add_cog(Stage(bot))
