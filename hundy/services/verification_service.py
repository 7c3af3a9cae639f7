"""
hundy.services.verification_service - Twitch role verification
===============================================================

``/verify`` flow::

    linked account? ──no──▶ link URL
         │yes
    Twitch user → subscription + follower checks → grant roles → outcome

The member's stored token is used when present, otherwise the client falls
back to its app token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import discord

from hundy.config import HundyConfig
from hundy.errors import ExternalAPIFailure, NotFound
from hundy.services.account_service import AccountLinker
from hundy.services.twitch_client import TwitchClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VerificationOutcome:
    linked: bool
    link_url: str | None = None
    subscribed: bool = False
    following: bool = False
    granted: tuple[str, ...] = field(default_factory=tuple)

    @property
    def message(self) -> str:
        if not self.linked:
            return f"Click here to link your Twitch account: {self.link_url}"
        if self.subscribed:
            extra = (
                " You are also a follower and have been granted the follower role."
                if self.following
                else ""
            )
            return f"✅ You are subscribed! Role added.{extra}"
        if self.following:
            return "✅ You are not subscribed, but you follow the channel. You have been granted the follower role."
        return "❌ You are not subscribed or following the Twitch channel."


def link_url(cfg: HundyConfig, user_id: int) -> str:
    return f"{cfg.oauth_base_url}/authorize?discordId={user_id}"


async def _grant(member: discord.Member, role: discord.Role | None) -> bool:
    if role is None:
        return False
    if role in member.roles:
        return True
    try:
        await member.add_roles(role, reason="Twitch verification")
        return True
    except discord.HTTPException as exc:
        logger.warning("Could not grant %s to %s: %s", role.name, member.id, exc)
        return False


async def verify_member(
    member: discord.Member,
    linker: AccountLinker,
    twitch: TwitchClient,
    cfg: HundyConfig,
) -> VerificationOutcome:
    """Check *member*'s Twitch standing and grant the matching roles."""
    account = await linker.lookup(member.id)
    if account is None:
        return VerificationOutcome(linked=False, link_url=link_url(cfg, member.id))

    token = account.access_token
    user = await twitch.get_user(account.twitch_id, token)
    if user.is_error:
        raise ExternalAPIFailure("❌ Verification failed (internal error).")
    if user.is_empty:
        raise NotFound("❌ Could not find Twitch account.")

    twitch_user_id = user.data["id"]
    sub = await twitch.get_subscription(twitch_user_id, token)
    follow = await twitch.get_follower(twitch_user_id, token)
    if sub.is_error and follow.is_error:
        raise ExternalAPIFailure("❌ Verification failed (internal error).")

    granted: list[str] = []
    guild = member.guild
    if sub.is_ok and cfg.subscriber_role_id:
        role = guild.get_role(cfg.subscriber_role_id)
        if await _grant(member, role):
            granted.append(role.name)
    if follow.is_ok:
        role = discord.utils.get(guild.roles, name=cfg.follower_role_name)
        if await _grant(member, role):
            granted.append(role.name)

    logger.info(
        "Verified %s (twitch %s): subscribed=%s following=%s",
        member.id, account.twitch_id, sub.is_ok, follow.is_ok,
    )
    return VerificationOutcome(
        linked=True,
        subscribed=sub.is_ok,
        following=follow.is_ok,
        granted=tuple(granted),
    )
