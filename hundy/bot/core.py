"""
hundy.bot.core - Bot Instance & Cog Loader
===========================================

**Why this file exists:**
Defines :class:`HundyBot`, a ``commands.Bot`` subclass that:

1. Holds the shared config (``bot.cfg``), document store (``bot.store``)
   and the service objects every cog works through.
2. Loads every cog listed in :data:`EXTENSIONS`.
3. Syncs the slash-command tree on startup (guild-scoped for dev via the
   ``DEV_GUILD_ID`` env var, global otherwise).
4. Routes button and modal interactions through one
   :class:`~hundy.bot.dispatch.InteractionRouter`.
"""

from __future__ import annotations

import logging
import os

import discord
from discord.ext import commands
from sqlalchemy import Engine

from hundy.bot.dispatch import InteractionRouter
from hundy.config import HundyConfig
from hundy.engine.moderation import BannedWordList, ModerationFilter
from hundy.services.account_service import AccountLinker
from hundy.services.document_store import DocumentStore
from hundy.services.ticket_service import TicketRegistry
from hundy.services.twitch_client import TwitchClient
from hundy.services.voice_service import VoiceSessionManager
from hundy.services.xp_service import ExperienceLedger
from hundy.services.youtube_client import YouTubeClient

logger = logging.getLogger(__name__)

EXTENSIONS: list[str] = [
    "hundy.bot.cogs.messages",
    "hundy.bot.cogs.leveling",
    "hundy.bot.cogs.voice",
    "hundy.bot.cogs.tickets",
    "hundy.bot.cogs.verification",
    "hundy.bot.cogs.community",
]


class HundyBot(commands.Bot):
    """Bot subclass carrying project-wide state.

    Parameters
    ----------
    cfg:
        Parsed :class:`HundyConfig` from ``config.yaml``.
    engine:
        SQLAlchemy engine holding the ``documents`` table.
    banned_words:
        The banned-word list, loaded once at startup.
    twitch, youtube:
        Optional API clients; features needing them are skipped when None.
    """

    def __init__(
        self,
        cfg: HundyConfig,
        engine: Engine,
        banned_words: BannedWordList,
        *,
        twitch: TwitchClient | None = None,
        youtube: YouTubeClient | None = None,
    ) -> None:
        intents = discord.Intents.default()
        intents.message_content = True    # Privileged: content filter
        intents.members = True            # Privileged: member lookups for roles
        intents.presences = False

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            description=cfg.community_name,
        )

        self.cfg = cfg
        self.engine = engine
        self.store = DocumentStore(engine)
        self.twitch = twitch
        self.youtube = youtube

        self.moderation = ModerationFilter(banned_words)
        self.tickets = TicketRegistry(self.store, staff_role_id=cfg.staff_role_id)
        self.ledger = ExperienceLedger(self.store, self.tickets)
        self.voice = VoiceSessionManager(
            self.store,
            banned_words,
            staff_role_id=cfg.staff_role_id,
            hub_channel_id=cfg.voice_menu_channel_id,
        )
        self.accounts = AccountLinker(self.store)
        self.router = InteractionRouter()

    def primary_guild(self) -> discord.Guild | None:
        return self.get_guild(self.cfg.guild_id)

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load cog extensions; one broken cog doesn't stop the rest."""
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        assert self.user is not None
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
        except discord.HTTPException as exc:
            logger.error("Command sync failed: %s", exc)

        if self.primary_guild() is None:
            logger.warning("Primary guild %d not found; menus will not be posted", self.cfg.guild_id)

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        """Component and modal interactions; slash commands go through the tree."""
        await self.router.dispatch(interaction)

    async def close(self) -> None:
        logger.info("Bot shutting down…")
        for client in (self.twitch, self.youtube):
            if client is not None:
                await client.close()
        await super().close()
