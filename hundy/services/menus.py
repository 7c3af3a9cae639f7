"""
hundy.services.menus - Post-once menu messages
===============================================

The VC hub, the ticket menu and the roles menu are single persistent
messages.  Before posting one we scan the channel's recent history for a
message the bot already posted with the same embed title, so restarts and
gateway reconnects don't stack duplicates.
"""

from __future__ import annotations

import logging

import discord

logger = logging.getLogger(__name__)


async def find_bot_post(
    channel: discord.abc.Messageable,
    bot_user_id: int,
    title: str,
    *,
    limit: int,
) -> discord.Message | None:
    """Return the bot's most recent message in *channel* whose embed is *title*."""
    try:
        async for message in channel.history(limit=limit):
            if message.author.id != bot_user_id or not message.embeds:
                continue
            if message.embeds[0].title == title:
                return message
    except discord.HTTPException as exc:
        # Can't read history; fall through and post.
        logger.warning("Could not scan history of channel %s: %s", getattr(channel, "id", "?"), exc)
    return None


async def post_menu_once(
    channel: discord.abc.Messageable | None,
    bot_user_id: int,
    embed: discord.Embed,
    *,
    view: discord.ui.View | None = None,
    limit: int = 50,
) -> discord.Message | None:
    """Post *embed* (+ *view*) unless the bot already has it in *channel*.

    Returns the new message, or None when nothing was posted.
    """
    if channel is None:
        return None
    existing = await find_bot_post(channel, bot_user_id, embed.title or "", limit=limit)
    if existing is not None:
        logger.debug("Menu %r already present in channel %s", embed.title, getattr(channel, "id", "?"))
        return None
    kwargs: dict = {"embed": embed}
    if view is not None:
        kwargs["view"] = view
    message = await channel.send(**kwargs)
    logger.info("Posted menu %r in channel %s", embed.title, getattr(channel, "id", "?"))
    return message
