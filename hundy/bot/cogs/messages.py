"""
hundy.bot.cogs.messages - Moderation + XP message pipeline
===========================================================

Pipeline:
1. on_message fires → gate checks (bot author, DM)
2. Build a MessageSnapshot
3. Moderation filter → sanction enforced, message stops here
4. Otherwise award XP; level-ups run their side effects

Also hosts ``/clear``.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from hundy.engine.events import MessageSnapshot
from hundy.services.moderation_service import enforce_sanction

if TYPE_CHECKING:
    from hundy.bot.core import HundyBot

logger = logging.getLogger(__name__)

# Discord refuses bulk deletes of messages older than this.
BULK_DELETE_MAX_AGE = timedelta(days=14)


def snapshot_message(message: discord.Message) -> MessageSnapshot:
    created = message.created_at
    return MessageSnapshot(
        user_id=message.author.id,
        content=message.content or "",
        has_attachment=bool(message.attachments),
        channel_id=message.channel.id,
        guild_id=message.guild.id if message.guild else 0,
        timestamp_ms=int(created.timestamp() * 1000),
    )


class Messages(commands.Cog, name="Messages"):
    """Filters every guild message, then feeds clean ones to the XP ledger."""

    def __init__(self, bot: HundyBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        try:
            await self._handle_message(message)
        except Exception:
            logger.exception(
                "Error processing message %s from user %s",
                message.id,
                message.author.id,
                extra={"channel_id": message.channel.id},
            )

    async def _handle_message(self, message: discord.Message) -> None:
        if message.author.bot or message.guild is None:
            return

        sanction = self.bot.moderation.evaluate(snapshot_message(message))
        if sanction is not None:
            logger.info(
                "Moderation: %s from %s (offense %d, reasons=%s)",
                sanction.verdict, message.author.id, sanction.offense_count,
                ",".join(sanction.reasons) or "-",
            )
            await enforce_sanction(message, sanction)
            return

        await self.bot.ledger.process_message(message)

    # -------------------------------------------------------------------
    # /clear
    # -------------------------------------------------------------------
    @app_commands.command(name="clear", description="Bulk delete recent messages in this channel.")
    @app_commands.describe(amount="How many messages to delete (1-100, default 10)")
    @app_commands.guild_only()
    async def clear(
        self,
        interaction: discord.Interaction,
        amount: app_commands.Range[int, 1, 100] = 10,
    ) -> None:
        if not interaction.permissions.manage_messages:
            await interaction.response.send_message(
                "❌ You don't have permission to clear messages.", ephemeral=True
            )
            return

        await interaction.response.defer(ephemeral=True)
        channel = interaction.channel
        try:
            deleted = await channel.purge(
                limit=amount,
                after=discord.utils.utcnow() - BULK_DELETE_MAX_AGE,
                bulk=True,
                reason=f"/clear by {interaction.user.id}",
            )
        except discord.HTTPException as exc:
            logger.warning("Purge failed in %s: %s", channel.id, exc)
            await interaction.followup.send("❌ Failed to delete messages.", ephemeral=True)
            return

        logger.info("User %s cleared %d messages in %s", interaction.user.id, len(deleted), channel.id)
        await interaction.followup.send(f"\U0001f9f9 Deleted {len(deleted)} messages.", ephemeral=True)


async def setup(bot: HundyBot) -> None:
    await bot.add_cog(Messages(bot))
