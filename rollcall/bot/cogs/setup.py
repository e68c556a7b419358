"""
rollcall.bot.cogs.setup — Admin Slash Commands
===============================================

``/setup`` command group for server administrators:
- /setup staffrole     — role allowed to use the panel and be counted
- /setup staffchannel  — channel holding the panel
- /setup leaderboard   — fallback panel channel
- /setup monitored     — channels where messages are counted
- /setup stagemod      — member timed on stage in ``single`` mode
- /setup stage-mode    — ``single`` or ``role``
- /setup show          — current configuration
- /setup refresh       — re-render the panel now

Every command requires the Administrator permission; replies are ephemeral.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from rollcall.constants import (
    LEADERBOARD_CHANNEL_KEY,
    MAX_MONITORED_CHANNELS,
    MONITORED_CHANNELS_KEY,
    STAFF_CHANNEL_KEY,
    STAFF_ROLE_KEY,
    STAGE_MOD_KEY,
    STAGE_MODE_KEY,
)
from rollcall.database.engine import run_db
from rollcall.database.models import StageMode
from rollcall.services.settings_service import (
    GuildSettings,
    load_guild_settings,
    parse_channel_input,
    set_setting,
)

if TYPE_CHECKING:
    from rollcall.bot.core import RollcallBot

logger = logging.getLogger(__name__)


def _mention(kind: str, value: int | None) -> str:
    if value is None:
        return "_not set_"
    return {"role": f"<@&{value}>", "channel": f"<#{value}>", "user": f"<@{value}>"}[kind]


def build_settings_embed(settings: GuildSettings) -> discord.Embed:
    """Summary of the attendance configuration for ``/setup show``."""
    monitored = (
        ", ".join(f"<#{cid}>" for cid in settings.monitored_channel_ids)
        if settings.monitored_channel_ids
        else "_none — no messages are counted_"
    )
    embed = discord.Embed(title="⚙️ Attendance Settings", color=discord.Color.blurple())
    embed.add_field(name="Staff role", value=_mention("role", settings.staff_role_id), inline=True)
    embed.add_field(name="Panel channel", value=_mention("channel", settings.staff_channel_id), inline=True)
    embed.add_field(
        name="Leaderboard channel",
        value=_mention("channel", settings.leaderboard_channel_id),
        inline=True,
    )
    embed.add_field(name="Monitored channels", value=monitored, inline=False)
    embed.add_field(name="Stage mode", value=f"`{settings.stage_mode.value}`", inline=True)
    embed.add_field(name="Stage moderator", value=_mention("user", settings.stage_mod_id), inline=True)
    return embed


class Setup(commands.Cog, name="Setup"):
    """Administrator configuration for attendance tracking."""

    setup_group = app_commands.Group(
        name="setup",
        description="Configure staff attendance.",
        default_permissions=discord.Permissions(administrator=True),
        guild_only=True,
    )

    def __init__(self, bot: RollcallBot) -> None:
        self.bot = bot

    async def _save(self, key: str, value: str) -> None:
        await run_db(set_setting, self.bot.engine, key, value)

    async def set_monitored(self, raw: str) -> str:
        """Validate and store a monitored-channel list.  Returns the reply."""
        ids, rejected = parse_channel_input(raw)
        if rejected:
            return "❌ Not a channel id: " + ", ".join(f"`{t}`" for t in rejected)
        if not ids:
            return "❌ Give at least one channel id."
        if len(ids) > MAX_MONITORED_CHANNELS:
            return f"❌ At most {MAX_MONITORED_CHANNELS} channels can be monitored."
        await self._save(MONITORED_CHANNELS_KEY, ",".join(str(i) for i in ids))
        return "✅ Monitored channels: " + ", ".join(f"<#{i}>" for i in ids)

    # -------------------------------------------------------------------
    # Roles & channels
    # -------------------------------------------------------------------
    @setup_group.command(name="staffrole", description="Set the staff role.")
    @app_commands.describe(role="Members with this role can use the panel")
    @app_commands.checks.has_permissions(administrator=True)
    async def staff_role(self, interaction: discord.Interaction, role: discord.Role) -> None:
        await self._save(STAFF_ROLE_KEY, str(role.id))
        await interaction.response.send_message(f"✅ Staff role set: <@&{role.id}>", ephemeral=True)

    @setup_group.command(name="staffchannel", description="Set the channel that holds the staff panel.")
    @app_commands.describe(channel="Channel for the attendance panel")
    @app_commands.checks.has_permissions(administrator=True)
    async def staff_channel(self, interaction: discord.Interaction, channel: discord.TextChannel) -> None:
        await self._save(STAFF_CHANNEL_KEY, str(channel.id))
        await interaction.response.send_message(f"✅ Panel channel: <#{channel.id}>", ephemeral=True)
        self.bot.refresher.request()

    @setup_group.command(name="leaderboard", description="Set the leaderboard channel (may be the same).")
    @app_commands.describe(channel="Used for the panel when no staff channel is set")
    @app_commands.checks.has_permissions(administrator=True)
    async def leaderboard_channel(self, interaction: discord.Interaction, channel: discord.TextChannel) -> None:
        await self._save(LEADERBOARD_CHANNEL_KEY, str(channel.id))
        await interaction.response.send_message(f"✅ Leaderboard channel: <#{channel.id}>", ephemeral=True)
        self.bot.refresher.request()

    @setup_group.command(name="monitored", description="Set the channels where messages are counted.")
    @app_commands.describe(channels="Channel ids or #mentions, separated by commas")
    @app_commands.checks.has_permissions(administrator=True)
    async def monitored(self, interaction: discord.Interaction, channels: str) -> None:
        reply = await self.set_monitored(channels)
        await interaction.response.send_message(reply, ephemeral=True)

    # -------------------------------------------------------------------
    # Stage
    # -------------------------------------------------------------------
    @setup_group.command(name="stagemod", description="Set the stage moderator (single mode).")
    @app_commands.describe(user="Member whose stage time is tracked")
    @app_commands.checks.has_permissions(administrator=True)
    async def stage_mod(self, interaction: discord.Interaction, user: discord.Member) -> None:
        await self._save(STAGE_MOD_KEY, str(user.id))
        await interaction.response.send_message(f"✅ Stage moderator: <@{user.id}>", ephemeral=True)

    @setup_group.command(name="stage-mode", description="Choose who is timed on stage.")
    @app_commands.describe(mode="single: the stage moderator only · role: everyone with the staff role")
    @app_commands.choices(
        mode=[app_commands.Choice(name=m.value, value=m.value) for m in StageMode],
    )
    @app_commands.checks.has_permissions(administrator=True)
    async def stage_mode(self, interaction: discord.Interaction, mode: app_commands.Choice[str]) -> None:
        await self._save(STAGE_MODE_KEY, mode.value)
        await interaction.response.send_message(f"✅ Stage mode set to **{mode.value}**", ephemeral=True)

    # -------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------
    @setup_group.command(name="show", description="Show the current attendance settings.")
    @app_commands.checks.has_permissions(administrator=True)
    async def show(self, interaction: discord.Interaction) -> None:
        settings = await run_db(load_guild_settings, self.bot.engine)
        await interaction.response.send_message(embed=build_settings_embed(settings), ephemeral=True)

    @setup_group.command(name="refresh", description="Re-render the staff panel now.")
    @app_commands.checks.has_permissions(administrator=True)
    async def refresh(self, interaction: discord.Interaction) -> None:
        self.bot.refresher.request()
        await interaction.response.send_message("🔄 Panel refresh requested.", ephemeral=True)

    # -------------------------------------------------------------------
    # Error handler
    # -------------------------------------------------------------------
    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_commands.CheckFailure):
            message = "🔒 You need the Administrator permission to use this command."
        else:
            logger.error("Setup command failed", exc_info=error)
            message = "⚠️ Could not save that setting. Please try again."

        if interaction.response.is_done():
            return
        await interaction.response.send_message(message, ephemeral=True)


async def setup(bot: RollcallBot) -> None:
    await bot.add_cog(Setup(bot))
