"""
rollcall.bot.core — Bot Instance & Cog Loader
==============================================

Defines :class:`RollcallBot`, a ``commands.Bot`` subclass that:

1. Stores the shared config (``bot.cfg``) and DB engine (``bot.engine``)
   so every Cog can reach them via ``self.bot``.
2. Loads every Cog listed in :data:`EXTENSIONS`.
3. Owns the :class:`~rollcall.services.refresh.PanelRefresher`, the single
   task that re-renders the panel message.
4. Syncs the slash-command tree on startup (guild-scoped for dev, global
   for production — controlled by the ``DEV_GUILD_ID`` env var).
"""

from __future__ import annotations

import asyncio
import logging
import os

import discord
from discord.ext import commands
from sqlalchemy import Engine

from rollcall.config import RollcallConfig
from rollcall.services.panel_service import publish_panel
from rollcall.services.refresh import PanelRefresher

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "rollcall.bot.cogs.attendance",
    "rollcall.bot.cogs.counter",
    "rollcall.bot.cogs.stage",
    "rollcall.bot.cogs.setup",
]


class RollcallBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`RollcallConfig` from ``config.yaml``.
    engine:
        A SQLAlchemy :class:`Engine` connected to PostgreSQL.
    """

    def __init__(self, cfg: RollcallConfig, engine: Engine) -> None:
        # Standard intents include GUILDS, GUILD_MESSAGES, GUILD_VOICE_STATES.
        # MESSAGE_CONTENT is not needed: messages are counted, never read.
        intents = discord.Intents.default()
        intents.members = True            # Privileged: role checks on voice updates
        intents.presences = False

        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=intents,
            description=f"{cfg.community_name} — staff attendance",
        )

        self.cfg = cfg
        self.engine = engine
        self.refresher = PanelRefresher(self._render_panel, debounce=cfg.refresh_debounce_seconds)

        # Set by the Attendance cog when it registers the persistent view
        self.panel_view: discord.ui.View | None = None

    async def _render_panel(self) -> discord.Message | None:
        return await publish_panel(self)

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load Cog extensions and start the panel refresh worker.

        A failing extension is logged and skipped; the rest still load.
        """
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

        self.refresher.start(asyncio.get_running_loop())
        logger.info("Panel refresh worker started.")

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated."""
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        dev_guild_id = os.getenv("DEV_GUILD_ID")
        try:
            if dev_guild_id:
                guild = discord.Object(id=int(dev_guild_id))
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
            else:
                synced = await self.tree.sync()
                logger.info("Synced %d commands globally", len(synced))
        except discord.HTTPException:
            logger.exception("Slash-command sync failed")

        self.refresher.request()

    async def close(self) -> None:
        """Graceful shutdown — stop the refresh worker."""
        logger.info("Bot shutting down…")
        self.refresher.stop()
        await super().close()
