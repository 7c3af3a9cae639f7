"""
hundy.services.xp_service - Experience Ledger
==============================================

Persists XP awards and runs the level-up side effects.

Flow for one allowed message::

    award (locked read-modify-write of the xp document)
      └─ leveled up? → announce → ensure "Level N" role → grant role

Each side effect is best-effort: a failed announcement or a failed
notification ticket never blocks the role grant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import discord

from hundy.constants import LEADERBOARD_SIZE, LEVEL_ROLE_COLOR, XP_PER_MESSAGE
from hundy.database.models import DocumentName
from hundy.engine.leveling import ExperienceRecord, LevelResult, award_xp, leaderboard, rank_of
from hundy.errors import HundyError
from hundy.services.document_store import DocumentStore
from hundy.services.ticket_service import TicketRegistry

logger = logging.getLogger(__name__)


def level_role_name(level: int) -> str:
    return f"Level {level}"


@dataclass(slots=True)
class LevelUpReport:
    announced: bool = False
    role_created: bool = False
    ticket_opened: bool = False
    role_granted: bool = False


class ExperienceLedger:
    """XP awards, rank lookups and level-up rewards."""

    def __init__(self, store: DocumentStore, tickets: TicketRegistry) -> None:
        self.store = store
        self.tickets = tickets

    # -- reads -------------------------------------------------------------
    async def rank(self, user_id: int) -> ExperienceRecord:
        return rank_of(await self.store.read(DocumentName.XP), user_id)

    async def level_of(self, user_id: int) -> int:
        return (await self.rank(user_id)).level

    async def leaderboard(self, limit: int = LEADERBOARD_SIZE) -> list[tuple[str, ExperienceRecord]]:
        return leaderboard(await self.store.read(DocumentName.XP), limit)

    # -- writes ------------------------------------------------------------
    async def award(self, user_id: int, increment: float = XP_PER_MESSAGE) -> LevelResult:
        """Add *increment* to *user_id* and persist, level-up or not."""
        async with self.store.edit(DocumentName.XP) as ledger:
            result = award_xp(ledger, user_id, increment)
        if result.leveled_up:
            logger.info("User %s reached level %d", user_id, result.level)
        return result

    async def process_message(self, message: discord.Message) -> LevelResult:
        """Award one message's XP and celebrate a level-up."""
        result = await self.award(message.author.id)
        if result.leveled_up and message.guild is not None:
            await self.celebrate(message.channel, message.guild, message.author.id, result.level)
        return result

    async def celebrate(
        self,
        channel: discord.abc.Messageable,
        guild: discord.Guild,
        user_id: int,
        level: int,
    ) -> LevelUpReport:
        report = LevelUpReport()

        # 1. Announce
        try:
            await channel.send(f"\U0001f389 Congrats <@{user_id}>, you reached **Level {level}!**")
            report.announced = True
        except discord.HTTPException as exc:
            logger.warning("Level-up announcement failed for %s: %s", user_id, exc)

        # 2. Ensure role
        role_name = level_role_name(level)
        role = discord.utils.get(guild.roles, name=role_name)
        if role is None:
            try:
                role = await guild.create_role(
                    name=role_name,
                    colour=discord.Colour(LEVEL_ROLE_COLOR),
                    reason="Auto-created level role",
                )
                report.role_created = True
                logger.info("Created role %s", role_name)
            except discord.HTTPException as exc:
                logger.warning("Could not create role %s: %s", role_name, exc)
                role = None
            if report.role_created:
                try:
                    await self.tickets.open_notification(guild, user_id, role_name, level)
                    report.ticket_opened = True
                except (HundyError, discord.HTTPException) as exc:
                    logger.warning("Notification ticket for %s failed: %s", role_name, exc)

        # 3. Grant
        if role is not None:
            try:
                member = guild.get_member(user_id) or await guild.fetch_member(user_id)
                if role not in member.roles:
                    await member.add_roles(role, reason=f"Reached {role_name}")
                report.role_granted = True
            except discord.HTTPException as exc:
                logger.warning("Could not grant %s to %s: %s", role_name, user_id, exc)

        return report
