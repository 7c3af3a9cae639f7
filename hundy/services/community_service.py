"""
hundy.services.community_service - Reaction roles, socials and presence
========================================================================

Small helpers behind the community cog.  Resolution is pure; the apply
functions do the Discord calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import discord

from hundy.config import HundyConfig
from hundy.services.api_result import ApiResult
from hundy.services.youtube_client import Video

logger = logging.getLogger(__name__)

GUIDELINES_EMOJI = "✅"

ROLE_MENU_LABELS: dict[str, str] = {
    "\U0001f3ae": "Games Area",
    "\U0001f4e2": "Video Drop Pings",
    "⭐": "Notified Pings",
}


@dataclass(frozen=True, slots=True)
class ReactionRole:
    """A role picked by a reaction: by id or by name."""

    role_id: int | None = None
    role_name: str | None = None
    removable: bool = True

    def resolve(self, guild: discord.Guild) -> discord.Role | None:
        if self.role_id:
            return guild.get_role(self.role_id)
        return discord.utils.get(guild.roles, name=self.role_name)


def resolve_reaction_role(cfg: HundyConfig, channel_id: int, emoji: str) -> ReactionRole | None:
    """Which role a reaction in *channel_id* maps to, if any.

    The guidelines ✅ is grant-only; roles-menu reactions toggle.
    """
    if cfg.guidelines_channel_id and channel_id == cfg.guidelines_channel_id:
        if emoji == GUIDELINES_EMOJI:
            return ReactionRole(role_name=cfg.guidelines_role_name, removable=False)
        return None
    if cfg.roles_menu_channel_id and channel_id == cfg.roles_menu_channel_id:
        role_id = cfg.reaction_roles.get(emoji)
        if role_id:
            return ReactionRole(role_id=role_id)
    return None


async def apply_reaction_role(
    guild: discord.Guild, member: discord.Member, target: ReactionRole, *, add: bool
) -> bool:
    """Grant or remove the role; returns True if a change was made."""
    role = target.resolve(guild)
    if role is None:
        logger.warning("Reaction role %s not found", target.role_id or target.role_name)
        return False
    try:
        if add and role not in member.roles:
            await member.add_roles(role, reason="Reaction role")
            return True
        if not add and target.removable and role in member.roles:
            await member.remove_roles(role, reason="Reaction role removed")
            return True
    except discord.HTTPException as exc:
        logger.warning("Reaction role change failed for %s: %s", member.id, exc)
    return False


def socials_text(cfg: HundyConfig, latest: ApiResult[Video] | None = None) -> str:
    """Socials links, plus the latest video when one was found."""
    lines = []
    if cfg.twitch_login:
        lines.append(f"\U0001f517 **Twitch:** https://twitch.tv/{cfg.twitch_login}")
    if cfg.youtube_channel_id:
        lines.append(
            f"\U0001f517 **YouTube:** https://www.youtube.com/channel/{cfg.youtube_channel_id}"
        )
    parts = ["\n".join(lines)]
    if latest is not None and latest.is_ok:
        parts.append(f"▶️ **Latest YouTube Video:** [{latest.data.title}]({latest.data.url})")
    return "\n\n".join(p for p in parts if p)


def presence_for(cfg: HundyConfig, stream: ApiResult[dict] | None) -> discord.BaseActivity:
    """Streaming activity while live, otherwise "watching on YouTube"."""
    name = cfg.twitch_login or cfg.community_name
    if stream is not None and stream.is_ok:
        return discord.Streaming(
            name=f"{name} on Twitch", url=f"https://www.twitch.tv/{cfg.twitch_login}"
        )
    return discord.Activity(type=discord.ActivityType.watching, name=f"{name} on YouTube")
