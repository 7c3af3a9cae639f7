"""
hundy.engine.events - Immutable Event Snapshots
================================================

Every inbound gateway message is normalized into a :class:`MessageSnapshot`
before the moderation filter and the XP ledger look at it.  The engine never
touches ``discord.Message`` directly, so it stays testable with plain data.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["MessageSnapshot"]


@dataclass(frozen=True, slots=True)
class MessageSnapshot:
    """The parts of a posted message the moderation pipeline needs.

    ``timestamp_ms`` is the message's creation time in epoch milliseconds,
    taken from Discord rather than the local clock.
    """

    user_id: int
    content: str
    timestamp_ms: int
    has_attachment: bool = False
    channel_id: int = 0
    guild_id: int = 0
