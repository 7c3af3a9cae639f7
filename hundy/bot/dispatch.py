"""
hundy.bot.dispatch - Component & Modal Interaction Router
==========================================================

Buttons and modals are matched by ``custom_id`` prefix against an explicit
table that cogs fill in ``cog_load``::

    router.register_component("vc_lock_", handler)
    router.register_modal("vc_rename_modal_", handler)

The longest matching prefix wins, so ``vc_rename_modal_`` and
``vc_rename_`` never shadow each other.  Each handler gets the raw
interaction plus an immutable :class:`InteractionContext` whose
``argument`` is whatever follows the prefix (the owner id for VC buttons).

Error conversion happens here, once: :class:`~hundy.errors.HundyError`
becomes its private ``user_message``, anything else is logged and answered
with a generic private notice.  Nothing escapes to the gateway loop.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import discord

from hundy.errors import HundyError, ValidationFailure

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "⚠️ Internal error occurred."


@dataclass(frozen=True, slots=True)
class InteractionContext:
    custom_id: str
    prefix: str
    argument: str
    user_id: int
    guild_id: int | None
    channel_id: int | None

    @classmethod
    def from_interaction(cls, interaction: discord.Interaction, prefix: str) -> InteractionContext:
        custom_id = (interaction.data or {}).get("custom_id", "")
        return cls(
            custom_id=custom_id,
            prefix=prefix,
            argument=custom_id[len(prefix):],
            user_id=interaction.user.id,
            guild_id=interaction.guild_id,
            channel_id=interaction.channel_id,
        )

    @property
    def owner_id(self) -> int:
        """The argument as a snowflake (owner-scoped VC ids)."""
        try:
            return int(self.argument)
        except ValueError as exc:
            raise ValidationFailure("❌ Invalid VC button.") from exc


Handler = Callable[[discord.Interaction, InteractionContext], Awaitable[None]]


async def reply_private(interaction: discord.Interaction, content: str) -> None:
    """Ephemeral reply, or follow-up if the interaction was already answered."""
    try:
        if interaction.response.is_done():
            await interaction.followup.send(content, ephemeral=True)
        else:
            await interaction.response.send_message(content, ephemeral=True)
    except discord.HTTPException as exc:
        logger.warning("Could not reply to interaction %s: %s", interaction.id, exc)


class InteractionRouter:
    """Prefix → handler tables for components and modal submissions."""

    def __init__(self) -> None:
        self._tables: dict[discord.InteractionType, dict[str, Handler]] = {
            discord.InteractionType.component: {},
            discord.InteractionType.modal_submit: {},
        }

    def register_component(self, prefix: str, handler: Handler) -> None:
        self._register(discord.InteractionType.component, prefix, handler)

    def register_modal(self, prefix: str, handler: Handler) -> None:
        self._register(discord.InteractionType.modal_submit, prefix, handler)

    def _register(self, kind: discord.InteractionType, prefix: str, handler: Handler) -> None:
        table = self._tables[kind]
        if prefix in table:
            raise ValueError(f"Handler already registered for {kind.name} prefix {prefix!r}")
        table[prefix] = handler

    def unregister(self, prefix: str) -> None:
        for table in self._tables.values():
            table.pop(prefix, None)

    def resolve(self, kind: discord.InteractionType, custom_id: str) -> tuple[str, Handler] | None:
        table = self._tables.get(kind)
        if not table or not custom_id:
            return None
        matches = [p for p in table if custom_id.startswith(p)]
        if not matches:
            return None
        prefix = max(matches, key=len)
        return prefix, table[prefix]

    async def dispatch(self, interaction: discord.Interaction) -> bool:
        """Route *interaction*; returns False when no handler matched."""
        custom_id = (interaction.data or {}).get("custom_id", "")
        match = self.resolve(interaction.type, custom_id)
        if match is None:
            return False

        prefix, handler = match
        ctx = InteractionContext.from_interaction(interaction, prefix)
        try:
            await handler(interaction, ctx)
        except HundyError as exc:
            logger.info("Interaction %s refused: %s", custom_id, exc.user_message)
            await reply_private(interaction, exc.user_message)
        except Exception:
            logger.exception(
                "Interaction handler failed",
                extra={"custom_id": custom_id, "user_id": ctx.user_id},
            )
            await reply_private(interaction, INTERNAL_ERROR_MESSAGE)
        return True
