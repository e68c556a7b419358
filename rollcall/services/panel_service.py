"""
rollcall.services.panel_service — Panel publishing
====================================================

Keeps exactly one panel message in the panel channel.  The message is
located by the id persisted under ``panel_message_id``; if that message is
gone, the most recent messages are scanned for a bot-authored panel (by
title) before a new one is sent.  The id that ends up holding the panel is
written back to the settings table.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import discord

from rollcall.constants import PANEL_MESSAGE_KEY, PANEL_SCAN_LIMIT, PANEL_TITLE
from rollcall.database.engine import run_db
from rollcall.services.embeds import build_panel_embed
from rollcall.services.settings_service import load_guild_settings, set_setting
from rollcall.services.staff_service import get_all_staff, get_leaderboard

if TYPE_CHECKING:
    from rollcall.bot.core import RollcallBot

logger = logging.getLogger(__name__)


async def resolve_channel(bot: RollcallBot, channel_id: int) -> discord.abc.Messageable | None:
    """Channel from cache, falling back to an API fetch."""
    channel = bot.get_channel(channel_id)
    if channel is not None:
        return channel
    try:
        return await bot.fetch_channel(channel_id)
    except (discord.NotFound, discord.Forbidden):
        logger.warning("Panel channel %d is not reachable", channel_id)
        return None


def _is_panel_message(message: discord.Message, bot_user_id: int) -> bool:
    return (
        message.author.id == bot_user_id
        and bool(message.embeds)
        and message.embeds[0].title == PANEL_TITLE
    )


async def find_panel_message(
    channel, bot_user_id: int, stored_id: int | None
) -> discord.Message | None:
    """Locate the current panel message: stored id first, then a title scan."""
    if stored_id is not None:
        try:
            message = await channel.fetch_message(stored_id)
            if message.author.id == bot_user_id:
                return message
        except discord.NotFound:
            logger.info("Stored panel message %d no longer exists", stored_id)
        except discord.Forbidden:
            logger.warning("Cannot read stored panel message %d", stored_id)

    async for message in channel.history(limit=PANEL_SCAN_LIMIT):
        if _is_panel_message(message, bot_user_id):
            return message
    return None


async def publish_panel(bot: RollcallBot) -> discord.Message | None:
    """Render the panel into its channel, editing the existing message.

    Never raises: a broken render is logged and skipped, and the next
    refresh tries again.
    """
    try:
        return await _publish_panel(bot)
    except Exception:
        logger.exception("Panel publish failed")
        return None


async def _publish_panel(bot: RollcallBot) -> discord.Message | None:
    if bot.user is None:
        logger.debug("Bot is not logged in yet; skipping render")
        return None

    settings = await run_db(load_guild_settings, bot.engine)
    channel_id = settings.panel_channel_id
    if channel_id is None:
        logger.debug("No panel channel configured; skipping render")
        return None

    channel = await resolve_channel(bot, channel_id)
    if channel is None:
        return None

    leaderboard = await run_db(get_leaderboard, bot.engine, bot.cfg.leaderboard_size)
    staff = await run_db(get_all_staff, bot.engine)

    guild = getattr(channel, "guild", None)
    icon_url = os.getenv("PANEL_LOGO_URL") or (guild.icon.url if guild and guild.icon else None)
    embed = build_panel_embed(
        leaderboard,
        staff,
        guild_name=guild.name if guild else None,
        icon_url=icon_url,
        color=bot.cfg.panel_color,
        refresh_interval_seconds=bot.cfg.refresh_interval_seconds,
    )

    message = await find_panel_message(channel, bot.user.id, settings.panel_message_id)
    if message is not None:
        await message.edit(embed=embed, view=bot.panel_view)
        logger.debug("Panel message %d edited", message.id)
    else:
        message = await channel.send(embed=embed, view=bot.panel_view)
        logger.info("Panel message %d posted in channel %d", message.id, channel_id)

    if message.id != settings.panel_message_id:
        await run_db(set_setting, bot.engine, PANEL_MESSAGE_KEY, str(message.id))
    return message
