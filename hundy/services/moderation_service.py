"""
hundy.services.moderation_service - Sanction Enforcement
=========================================================

Carries out a :class:`~hundy.engine.moderation.Sanction` against the live
message.  Steps run in a fixed order and each one fails on its own::

    delete message → fetch member → timeout (if due and moderatable) → one notice

A failed step is logged and the rest still run.  The notice text reflects
what actually happened, so a failed timeout degrades to a warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

import discord

from hundy.engine.moderation import Sanction

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EnforcementReport:
    """What enforcement actually managed to do."""

    deleted: bool = False
    member_found: bool = False
    moderatable: bool = False
    timed_out: bool = False
    timeout_failed: bool = False
    notice: str = ""
    notified: bool = False


def describe_duration(duration: timedelta) -> str:
    """``5 minutes`` / ``1 hour`` style text for a timeout."""
    minutes = int(duration.total_seconds() // 60)
    if minutes % 60 == 0 and minutes >= 60:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def is_moderatable(member: discord.Member) -> bool:
    """Whether the bot may time *member* out.

    Mirrors Discord's own rules: the bot needs ``moderate_members``, the
    target can't be the owner or an administrator, and the bot's top role
    must sit above the target's.
    """
    guild = member.guild
    me = guild.me
    if me is None or not me.guild_permissions.moderate_members:
        return False
    if member.id == guild.owner_id or member.guild_permissions.administrator:
        return False
    return member.top_role.position < me.top_role.position


def build_notice(sanction: Sanction, user_id: int, report: EnforcementReport) -> str:
    """Compose the single channel notice for *sanction*."""
    mention = f"<@{user_id}>"
    kind = "spam " if sanction.is_spam else ""
    removal = (
        f"Your {kind}message was removed."
        if report.deleted
        else f"Your {kind}message could not be removed."
    )

    if sanction.timeout is None:
        if sanction.is_spam:
            return f"⚠️ {mention}, please slow down! Spam is not allowed."
        if report.deleted:
            return f"⚠️ {mention}, that's not allowed here. Your message has been removed."
        return f"⚠️ {mention}, that's not allowed here."

    if report.timeout_failed:
        return f"⚠️ Error applying {kind}moderation to {mention}. {removal}"
    if not report.timed_out:
        return f"⚠️ {mention}, warning: bot cannot timeout you. {removal}"

    duration = describe_duration(sanction.timeout)
    if sanction.is_spam:
        return f"⏱️ {mention}, you've been timed out for {duration} (spam)."
    return (
        f"⏱️ {mention}, you've been timed out for {duration} "
        f"({_ordinal(sanction.offense_count)} offense)."
    )


async def enforce_sanction(message: discord.Message, sanction: Sanction) -> EnforcementReport:
    """Apply *sanction* to *message* and its author."""
    report = EnforcementReport()
    user_id = message.author.id
    guild = message.guild

    # 1. Delete
    try:
        await message.delete()
        report.deleted = True
    except discord.HTTPException as exc:
        logger.warning("Could not delete message %s from %s: %s", message.id, user_id, exc)

    # 2. Member
    member: discord.Member | None = None
    if guild is not None:
        try:
            member = guild.get_member(user_id) or await guild.fetch_member(user_id)
            report.member_found = True
        except discord.HTTPException as exc:
            logger.warning("Could not fetch member %s: %s", user_id, exc)

    # 3. Timeout
    if member is not None:
        report.moderatable = is_moderatable(member)
    if sanction.timeout is not None and member is not None and report.moderatable:
        try:
            await member.timeout(
                sanction.timeout,
                reason=f"Auto-moderation: {sanction.verdict} (offense {sanction.offense_count})",
            )
            report.timed_out = True
            logger.info(
                "Timed out %s for %s (offense %d)",
                user_id, describe_duration(sanction.timeout), sanction.offense_count,
            )
        except discord.HTTPException as exc:
            report.timeout_failed = True
            logger.warning("Timeout failed for %s: %s", user_id, exc)

    # 4. Notice
    report.notice = build_notice(sanction, user_id, report)
    try:
        await message.channel.send(report.notice)
        report.notified = True
    except discord.HTTPException as exc:
        logger.warning("Could not post moderation notice in %s: %s", message.channel.id, exc)

    return report
