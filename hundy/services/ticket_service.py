"""
hundy.services.ticket_service - Ticket Registry
================================================

Private support channels, one open ticket per member.  The ``tickets``
document maps channel id → ``{"userId", "status", "reason"?}``.

Closing removes the entry right away and deletes the channel a few seconds
later so the member can read the confirmation.
"""

from __future__ import annotations

import asyncio
import logging

import discord

from hundy.constants import TICKET_CLOSE_DELAY
from hundy.database.models import DocumentName
from hundy.errors import AlreadyExists, ExternalAPIFailure, NotFound
from hundy.services.controls import close_ticket_view
from hundy.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

STATUS_OPEN = "open"


def has_open_ticket(tickets: dict, user_id: int | str) -> bool:
    """True if *tickets* holds an open entry for *user_id*."""
    uid = str(user_id)
    return any(
        entry.get("userId") == uid and entry.get("status") == STATUS_OPEN
        for entry in tickets.values()
    )


def open_ticket_channel_id(tickets: dict, user_id: int | str) -> int | None:
    uid = str(user_id)
    for channel_id, entry in tickets.items():
        if entry.get("userId") == uid and entry.get("status") == STATUS_OPEN:
            return int(channel_id)
    return None


class TicketRegistry:
    """Opens and closes ticket channels and keeps the registry in sync."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        staff_role_id: int | None = None,
        close_delay: float = TICKET_CLOSE_DELAY,
    ) -> None:
        self.store = store
        self.staff_role_id = staff_role_id
        self.close_delay = close_delay
        self._pending: set[asyncio.Task] = set()

    def private_overwrites(self, guild: discord.Guild, user_id: int) -> dict:
        """Hidden from everyone; visible to the member, staff and the bot."""
        visible = discord.PermissionOverwrite(view_channel=True, send_messages=True)
        member = guild.get_member(user_id) or discord.Object(id=user_id, type=discord.Member)
        overwrites: dict = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            member: visible,
        }
        if self.staff_role_id:
            role = guild.get_role(self.staff_role_id) or discord.Object(
                id=self.staff_role_id, type=discord.Role
            )
            overwrites[role] = visible
        if guild.me is not None:
            overwrites[guild.me] = visible
        return overwrites

    async def open(self, guild: discord.Guild, user: discord.abc.User) -> discord.TextChannel:
        """Create a ticket for *user*.  Raises AlreadyExists if one is open."""
        async with self.store.edit(DocumentName.TICKETS) as tickets:
            if has_open_ticket(tickets, user.id):
                raise AlreadyExists("❌ You already have an open ticket.")
            try:
                channel = await guild.create_text_channel(
                    name=f"ticket-{user.name}",
                    overwrites=self.private_overwrites(guild, user.id),
                    reason=f"Ticket opened by {user.id}",
                )
            except discord.HTTPException as exc:
                logger.warning("Ticket channel creation failed for %s: %s", user.id, exc)
                raise ExternalAPIFailure("❌ Failed to create ticket. Check bot permissions.") from exc
            tickets[str(channel.id)] = {"userId": str(user.id), "status": STATUS_OPEN}

        logger.info("Opened ticket %s for %s", channel.id, user.id)
        try:
            await channel.send(
                f"\U0001f39f️ Hello <@{user.id}>, a staff member will be with you shortly. "
                "Click the button below to close the ticket.",
                view=close_ticket_view(),
            )
        except discord.HTTPException as exc:
            logger.warning("Could not greet in ticket %s: %s", channel.id, exc)
        return channel

    async def close(self, channel: discord.abc.GuildChannel) -> asyncio.Task:
        """Forget the ticket and schedule its channel for deletion.

        Returns the deletion task.  Raises NotFound for unknown channels.
        """
        async with self.store.edit(DocumentName.TICKETS) as tickets:
            if tickets.pop(str(channel.id), None) is None:
                raise NotFound("❌ Ticket not found.")

        logger.info("Closed ticket %s", channel.id)
        try:
            await channel.send(
                f"\U0001f512 Ticket closed. Channel will be deleted in {self.close_delay:g} seconds."
            )
        except discord.HTTPException as exc:
            logger.warning("Could not post close notice in %s: %s", channel.id, exc)

        task = asyncio.create_task(self._delete_later(channel))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _delete_later(self, channel: discord.abc.GuildChannel) -> None:
        await asyncio.sleep(self.close_delay)
        try:
            await channel.delete(reason="Ticket closed")
        except discord.HTTPException as exc:
            logger.warning("Could not delete ticket channel %s: %s", channel.id, exc)

    async def open_notification(
        self, guild: discord.Guild, user_id: int, role_name: str, level: int
    ) -> discord.abc.Messageable:
        """Tell staff that *role_name* was auto-created for *user_id*.

        If the member already has an open ticket the notice goes there;
        otherwise a ``ticket-level{N}`` channel is opened for them.
        """
        text = (
            f"\U0001f4e2 A new role **{role_name}** was auto-created and assigned to "
            f"<@{user_id}>. Staff, please review."
        )
        async with self.store.edit(DocumentName.TICKETS) as tickets:
            existing_id = open_ticket_channel_id(tickets, user_id)
            channel = guild.get_channel(existing_id) if existing_id else None
            if channel is None:
                try:
                    channel = await guild.create_text_channel(
                        name=f"ticket-level{level}",
                        overwrites=self.private_overwrites(guild, user_id),
                        reason=f"Role {role_name} auto-created",
                    )
                except discord.HTTPException as exc:
                    raise ExternalAPIFailure() from exc
                if existing_id:
                    tickets.pop(str(existing_id), None)
                tickets[str(channel.id)] = {
                    "userId": str(user_id),
                    "status": STATUS_OPEN,
                    "reason": f"Role {role_name} auto-created",
                }

        await channel.send(text, view=close_ticket_view())
        return channel
