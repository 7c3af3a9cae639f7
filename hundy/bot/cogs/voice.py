"""
hundy.bot.cogs.voice - Custom voice channel buttons & modals
============================================================

Registers the VC handlers with the interaction router and, on ready,
posts the hub menu and repairs stale controllers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from hundy.bot.dispatch import InteractionContext
from hundy.constants import HUB_SCAN_LIMIT
from hundy.errors import NotFound, ValidationFailure
from hundy.services import controls
from hundy.services.embeds import build_vc_hub_embed
from hundy.services.menus import post_menu_once

if TYPE_CHECKING:
    from hundy.bot.core import HundyBot

logger = logging.getLogger(__name__)


class Voice(commands.Cog, name="Voice"):
    """Owner-managed voice channels."""

    def __init__(self, bot: HundyBot) -> None:
        self.bot = bot
        self._routes = {
            controls.VC_CREATE: self._on_create,
            controls.VC_LOCK: self._on_lock,
            controls.VC_UNLOCK: self._on_unlock,
            controls.VC_RENAME: self._on_rename,
            controls.VC_INVITE: self._on_invite,
            controls.VC_DELETE: self._on_delete,
        }
        self._modal_routes = {
            controls.VC_RENAME_MODAL: self._on_rename_submit,
            controls.VC_INVITE_MODAL: self._on_invite_submit,
        }

    async def cog_load(self) -> None:
        for prefix, handler in self._routes.items():
            self.bot.router.register_component(prefix, handler)
        for prefix, handler in self._modal_routes.items():
            self.bot.router.register_modal(prefix, handler)

    async def cog_unload(self) -> None:
        for prefix in (*self._routes, *self._modal_routes):
            self.bot.router.unregister(prefix)

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        guild = self.bot.primary_guild()
        if guild is None:
            return
        try:
            channel = guild.get_channel(self.bot.cfg.voice_menu_channel_id or 0)
            await post_menu_once(
                channel,
                self.bot.user.id,
                build_vc_hub_embed(),
                view=controls.vc_hub_view(),
                limit=HUB_SCAN_LIMIT,
            )
        except Exception:
            logger.exception("Failed to post VC hub")
        try:
            restored = await self.bot.voice.restore_controllers(guild)
        except Exception:
            logger.exception("VC controller recovery failed")
            return
        if restored:
            logger.info("Restored %d VC controllers", len(restored))

    # -------------------------------------------------------------------
    # Buttons
    # -------------------------------------------------------------------
    async def _on_create(self, interaction: discord.Interaction, ctx: InteractionContext) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        voice, control = await self.bot.voice.create(interaction.guild, interaction.user)
        await interaction.followup.send(
            f"✅ Your voice channel {voice.mention} is ready. Manage it from {control.mention}.",
            ephemeral=True,
        )

    async def _on_lock(self, interaction: discord.Interaction, ctx: InteractionContext) -> None:
        await interaction.response.defer(ephemeral=True)
        await self.bot.voice.lock(interaction.guild, interaction.user, ctx.owner_id)
        await interaction.followup.send("\U0001f512 Channel locked!", ephemeral=True)

    async def _on_unlock(self, interaction: discord.Interaction, ctx: InteractionContext) -> None:
        await interaction.response.defer(ephemeral=True)
        await self.bot.voice.unlock(interaction.guild, interaction.user, ctx.owner_id)
        await interaction.followup.send("\U0001f513 Channel unlocked!", ephemeral=True)

    async def _require_session(self, interaction: discord.Interaction, owner_id: int) -> None:
        self.bot.voice.authorize(interaction.user, owner_id)
        if await self.bot.voice.get_session(owner_id) is None:
            raise NotFound("❌ VC record not found.")

    async def _on_rename(self, interaction: discord.Interaction, ctx: InteractionContext) -> None:
        await self._require_session(interaction, ctx.owner_id)
        await interaction.response.send_modal(controls.RenameModal(ctx.owner_id))

    async def _on_invite(self, interaction: discord.Interaction, ctx: InteractionContext) -> None:
        await self._require_session(interaction, ctx.owner_id)
        await interaction.response.send_modal(controls.InviteModal(ctx.owner_id))

    async def _on_delete(self, interaction: discord.Interaction, ctx: InteractionContext) -> None:
        self.bot.voice.authorize(interaction.user, ctx.owner_id)
        # Answer first: the control channel this button lives in is about to go.
        await interaction.response.send_message(
            "\U0001f5d1️ Deleting your VC and controller...", ephemeral=True
        )
        await self.bot.voice.delete(interaction.guild, interaction.user, ctx.owner_id)

    # -------------------------------------------------------------------
    # Modals
    # -------------------------------------------------------------------
    async def _on_rename_submit(self, interaction: discord.Interaction, ctx: InteractionContext) -> None:
        new_name = controls.modal_values(interaction).get(controls.VC_NEW_NAME_FIELD, "")
        await interaction.response.defer(ephemeral=True)
        outcome = await self.bot.voice.rename(
            interaction.guild, interaction.user, ctx.owner_id, new_name
        )
        if outcome.applied:
            message = f"✅ Channel renamed to **{outcome.name}**"
        else:
            message = f"⚠️ That name isn't allowed. Channel reset to **{outcome.name}**"
        await interaction.followup.send(message, ephemeral=True)

    async def _on_invite_submit(self, interaction: discord.Interaction, ctx: InteractionContext) -> None:
        raw = controls.modal_values(interaction).get(controls.VC_INVITE_USER_FIELD, "")
        if not raw.strip():
            raise ValidationFailure("❌ Provide a valid user ID or mention.")
        await interaction.response.defer(ephemeral=True, thinking=True)
        outcome = await self.bot.voice.invite(
            interaction.guild, interaction.user, ctx.owner_id, raw
        )
        if outcome.dm_sent:
            message = f"✅ Invited <@{outcome.target_id}> and sent them a DM."
        else:
            message = (
                f"⚠️ Added <@{outcome.target_id}>, but couldn't DM them. "
                f"Share this link: {outcome.url}"
            )
        await interaction.followup.send(message, ephemeral=True)


async def setup(bot: HundyBot) -> None:
    await bot.add_cog(Voice(bot))
