"""
hundy.bot.cogs.tickets - Ticket menu and open/close buttons
============================================================
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from hundy.bot.dispatch import InteractionContext
from hundy.constants import HUB_SCAN_LIMIT
from hundy.services import controls
from hundy.services.embeds import build_ticket_menu_embed
from hundy.services.menus import post_menu_once

if TYPE_CHECKING:
    from hundy.bot.core import HundyBot

logger = logging.getLogger(__name__)


class Tickets(commands.Cog, name="Tickets"):
    def __init__(self, bot: HundyBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        self.bot.router.register_component(controls.OPEN_TICKET, self._on_open)
        self.bot.router.register_component(controls.CLOSE_TICKET, self._on_close)

    async def cog_unload(self) -> None:
        self.bot.router.unregister(controls.OPEN_TICKET)
        self.bot.router.unregister(controls.CLOSE_TICKET)

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        guild = self.bot.primary_guild()
        if guild is None:
            return
        try:
            await post_menu_once(
                guild.get_channel(self.bot.cfg.ticket_menu_channel_id or 0),
                self.bot.user.id,
                build_ticket_menu_embed(),
                view=controls.ticket_menu_view(),
                limit=HUB_SCAN_LIMIT,
            )
        except Exception:
            logger.exception("Failed to post ticket menu")

    async def _on_open(self, interaction: discord.Interaction, ctx: InteractionContext) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        channel = await self.bot.tickets.open(interaction.guild, interaction.user)
        await interaction.followup.send(f"✅ Ticket created: {channel.mention}", ephemeral=True)

    async def _on_close(self, interaction: discord.Interaction, ctx: InteractionContext) -> None:
        await interaction.response.defer(ephemeral=True)
        await self.bot.tickets.close(interaction.channel)
        await interaction.followup.send("✅ Closing ticket…", ephemeral=True)


async def setup(bot: HundyBot) -> None:
    await bot.add_cog(Tickets(bot))
