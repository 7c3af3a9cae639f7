"""
hundy.bot.cogs.leveling - /rank and /leaderboard
=================================================
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands

from hundy.services.embeds import build_leaderboard_embed

if TYPE_CHECKING:
    from hundy.bot.core import HundyBot

logger = logging.getLogger(__name__)


class Leveling(commands.Cog, name="Leveling"):
    def __init__(self, bot: HundyBot) -> None:
        self.bot = bot

    @commands.hybrid_command(  # type: ignore[arg-type]
        name="rank",
        description="Check your level and XP.",
    )
    async def rank(self, ctx: commands.Context) -> None:
        record = await self.bot.ledger.rank(ctx.author.id)
        await ctx.send(
            f"⭐ <@{ctx.author.id}> | Level: **{record.level}**, XP: **{record.xp:.2f}**",
            ephemeral=True,
        )

    @commands.hybrid_command(  # type: ignore[arg-type]
        name="leaderboard",
        description="View the top members by XP.",
    )
    async def leaderboard(self, ctx: commands.Context) -> None:
        entries = await self.bot.ledger.leaderboard()
        await ctx.send(embed=build_leaderboard_embed(entries, self.bot.cfg.community_name))


async def setup(bot: HundyBot) -> None:
    await bot.add_cog(Leveling(bot))
