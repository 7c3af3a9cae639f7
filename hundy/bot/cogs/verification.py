"""
hundy.bot.cogs.verification - /verify
======================================
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from hundy.errors import HundyError
from hundy.services.verification_service import verify_member

if TYPE_CHECKING:
    from hundy.bot.core import HundyBot

logger = logging.getLogger(__name__)


class Verification(commands.Cog, name="Verification"):
    def __init__(self, bot: HundyBot) -> None:
        self.bot = bot

    @app_commands.command(name="verify", description="Verify your Twitch subscription to get the role.")
    @app_commands.guild_only()
    async def verify(self, interaction: discord.Interaction) -> None:
        if self.bot.twitch is None:
            await interaction.response.send_message(
                "⚠️ Twitch verification is not configured.", ephemeral=True
            )
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            outcome = await verify_member(
                interaction.user, self.bot.accounts, self.bot.twitch, self.bot.cfg
            )
            content = outcome.message
        except HundyError as exc:
            content = exc.user_message
        except Exception:
            logger.exception("Verification failed", extra={"user_id": interaction.user.id})
            content = "❌ Verification failed (internal error)."
        await interaction.followup.send(content, ephemeral=True)


async def setup(bot: HundyBot) -> None:
    await bot.add_cog(Verification(bot))
