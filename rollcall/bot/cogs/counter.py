"""
rollcall.bot.cogs.counter — Message Counting
=============================================

Counts one message per ``on_message`` for active staff in monitored
channels.  Gates, in order:

1. Ignore bots and DMs
2. Ignore channels not in ``monitored_channels`` (empty list counts nothing)
3. Ignore members without the staff role (when one is configured)
4. Ignore members whose status is not ``active``
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from rollcall.database.engine import run_db
from rollcall.database.models import StaffStatus
from rollcall.engine.access import is_authorized, is_monitored_channel, role_ids_of
from rollcall.services.settings_service import load_guild_settings
from rollcall.services.staff_service import get_status, increment_message_count

if TYPE_CHECKING:
    from rollcall.bot.core import RollcallBot

logger = logging.getLogger(__name__)


class Counter(commands.Cog, name="Counter"):
    """Counts messages from active staff in monitored channels."""

    def __init__(self, bot: RollcallBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        try:
            await self._handle_message(message)
        except Exception:
            logger.exception(
                "Error counting message %s from user %s",
                message.id, message.author.id,
            )

    async def _handle_message(self, message: discord.Message) -> bool:
        """Inner handler.  Returns True when the message was counted."""
        if message.author.bot or message.guild is None:
            return False

        settings = await run_db(load_guild_settings, self.bot.engine)
        if not is_monitored_channel(message.channel.id, settings.monitored_channel_ids):
            return False

        member = message.author
        if not is_authorized(role_ids_of(member), settings.staff_role_id):
            return False

        status = await run_db(get_status, self.bot.engine, member.id)
        if status is not StaffStatus.ACTIVE:
            logger.debug("Not counting %s: status is %s", member.id, status.value)
            return False

        points = await run_db(
            increment_message_count, self.bot.engine, member.id, message.channel.id,
        )
        logger.debug("Counted message from %s (points now %s)", member.id, points)
        return True


async def setup(bot: RollcallBot) -> None:
    await bot.add_cog(Counter(bot))
