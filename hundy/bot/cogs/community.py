"""
hundy.bot.cogs.community - Socials, guidelines, reaction roles, presence
=========================================================================

- ``/rsocial`` and ``/guidelines`` (staff, ``manage_messages``)
- ✅ on the guidelines post grants the guidelines role
- roles-menu reactions toggle the configured roles
- presence refreshed every few minutes from the Twitch live status
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands, tasks

from hundy.constants import PRESENCE_INTERVAL_MINUTES, ROLES_MENU_SCAN_LIMIT
from hundy.services.community_service import (
    GUIDELINES_EMOJI,
    ROLE_MENU_LABELS,
    apply_reaction_role,
    presence_for,
    resolve_reaction_role,
    socials_text,
)
from hundy.services.embeds import build_guidelines_embed, build_roles_menu_embed
from hundy.services.menus import post_menu_once

if TYPE_CHECKING:
    from hundy.bot.core import HundyBot

logger = logging.getLogger(__name__)


class Community(commands.Cog, name="Community"):
    def __init__(self, bot: HundyBot) -> None:
        self.bot = bot
        self._socials_posted = False

    async def cog_load(self) -> None:
        self.presence_loop.start()

    async def cog_unload(self) -> None:
        self.presence_loop.cancel()

    # -------------------------------------------------------------------
    # Presence
    # -------------------------------------------------------------------
    @tasks.loop(minutes=PRESENCE_INTERVAL_MINUTES)
    async def presence_loop(self) -> None:
        try:
            stream = await self.bot.twitch.get_stream() if self.bot.twitch else None
            await self.bot.change_presence(
                status=discord.Status.online, activity=presence_for(self.bot.cfg, stream)
            )
        except Exception:
            logger.exception("Presence update failed")

    @presence_loop.before_loop
    async def _before_presence(self) -> None:
        await self.bot.wait_until_ready()

    # -------------------------------------------------------------------
    # Startup posts
    # -------------------------------------------------------------------
    @commands.Cog.listener()
    async def on_ready(self) -> None:
        guild = self.bot.primary_guild()
        if guild is None:
            return
        await self._ensure_roles_menu(guild)
        if self.bot.cfg.post_socials_on_ready and not self._socials_posted:
            self._socials_posted = True
            channel = guild.get_channel(self.bot.cfg.socials_channel_id or 0)
            if channel is not None:
                try:
                    await channel.send(await self._socials_content(with_video=False))
                except discord.HTTPException as exc:
                    logger.warning("Failed posting socials: %s", exc)

    async def _ensure_roles_menu(self, guild: discord.Guild) -> None:
        channel = guild.get_channel(self.bot.cfg.roles_menu_channel_id or 0)
        emojis = list(self.bot.cfg.reaction_roles)
        if channel is None or not emojis:
            return
        labels = {emoji: ROLE_MENU_LABELS.get(emoji, "Role") for emoji in emojis}
        try:
            message = await post_menu_once(
                channel,
                self.bot.user.id,
                build_roles_menu_embed(self.bot.cfg.community_name, labels),
                limit=ROLES_MENU_SCAN_LIMIT,
            )
            if message is not None:
                for emoji in emojis:
                    await message.add_reaction(emoji)
        except discord.HTTPException as exc:
            logger.warning("Failed to post roles menu: %s", exc)

    async def _socials_content(self, *, with_video: bool) -> str:
        latest = None
        if with_video and self.bot.youtube is not None:
            latest = await self.bot.youtube.latest_upload()
        return socials_text(self.bot.cfg, latest)

    # -------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------
    @app_commands.command(name="rsocial", description="Post the socials links here.")
    @app_commands.guild_only()
    async def rsocial(self, interaction: discord.Interaction) -> None:
        if not interaction.permissions.manage_messages:
            await interaction.response.send_message(
                "❌ You don't have permission to refresh socials.", ephemeral=True
            )
            return
        await interaction.response.defer(ephemeral=True)
        content = await self._socials_content(with_video=True)
        try:
            await interaction.channel.send(content or "No socials configured.")
        except discord.HTTPException as exc:
            logger.warning("Could not post socials in %s: %s", interaction.channel_id, exc)
            await interaction.followup.send("❌ Failed to post socials.", ephemeral=True)
            return
        await interaction.followup.send("✅ Socials message posted.", ephemeral=True)

    @app_commands.command(name="guidelines", description="Post the server guidelines.")
    @app_commands.guild_only()
    async def guidelines(self, interaction: discord.Interaction) -> None:
        if not interaction.permissions.manage_messages:
            await interaction.response.send_message(
                "❌ You don't have permission to post guidelines.", ephemeral=True
            )
            return
        channel = interaction.guild.get_channel(self.bot.cfg.guidelines_channel_id or 0)
        if channel is None:
            await interaction.response.send_message(
                "❌ Guidelines channel not found.", ephemeral=True
            )
            return
        try:
            message = await channel.send(
                embed=build_guidelines_embed(
                    self.bot.cfg.community_name, self.bot.cfg.guidelines_image_url
                )
            )
            await message.add_reaction(GUIDELINES_EMOJI)
        except discord.HTTPException as exc:
            logger.warning("Could not post guidelines: %s", exc)
            await interaction.response.send_message("❌ Failed to post guidelines.", ephemeral=True)
            return
        await interaction.response.send_message("✅ Guidelines posted.", ephemeral=True)

    # -------------------------------------------------------------------
    # Reaction roles
    # -------------------------------------------------------------------
    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        await self._handle_reaction(payload, add=True)

    @commands.Cog.listener()
    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent) -> None:
        await self._handle_reaction(payload, add=False)

    async def _handle_reaction(self, payload: discord.RawReactionActionEvent, *, add: bool) -> None:
        try:
            if payload.guild_id is None or payload.user_id == self.bot.user.id:
                return
            target = resolve_reaction_role(self.bot.cfg, payload.channel_id, str(payload.emoji))
            if target is None:
                return
            guild = self.bot.get_guild(payload.guild_id)
            if guild is None:
                return
            member = payload.member or guild.get_member(payload.user_id)
            if member is None:
                member = await guild.fetch_member(payload.user_id)
            if member.bot:
                return
            await apply_reaction_role(guild, member, target, add=add)
        except Exception:
            logger.exception(
                "Reaction role handling failed",
                extra={"user_id": payload.user_id, "channel_id": payload.channel_id},
            )


async def setup(bot: HundyBot) -> None:
    await bot.add_cog(Community(bot))
