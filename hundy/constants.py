"""
hundy.constants - Shared Constants & Helpers
=============================================

Single source of truth for the leveling formula, the moderation escalation
ladder, and presentation constants.  Import from here instead of
duplicating in cogs and services.
"""

from __future__ import annotations

from datetime import timedelta

# ---------------------------------------------------------------------------
# Leveling formula - THE single canonical implementation
# ---------------------------------------------------------------------------
XP_PER_MESSAGE: float = 0.05
XP_PER_LEVEL: int = 200

# Keeps repeated 0.05 additions from landing a hair under a threshold.
XP_PRECISION: int = 4

LEADERBOARD_SIZE: int = 10

# Minimum level required to open a custom voice channel.
VOICE_MIN_LEVEL: int = 1


def xp_for_level(level: int) -> int:
    """Cumulative XP required to reach *level* (``level * 200``)."""
    return level * XP_PER_LEVEL


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------
SPAM_INTERVAL_MS: int = 1000

# Offense count → timeout applied when the member is moderatable.
# Counts at or above the last key reuse its duration.
ESCALATION_TIMEOUTS: dict[int, timedelta | None] = {
    1: None,
    2: timedelta(minutes=5),
    3: timedelta(hours=1),
}


def timeout_for_offense(count: int) -> timedelta | None:
    """Return the timeout for the *count*-th offense, or None for warn-only."""
    if count <= 0:
        return None
    ceiling = max(ESCALATION_TIMEOUTS)
    return ESCALATION_TIMEOUTS[min(count, ceiling)]


# ---------------------------------------------------------------------------
# Tickets / voice
# ---------------------------------------------------------------------------
TICKET_CLOSE_DELAY: float = 3.0

VC_NAME_MAX_LENGTH: int = 90
VC_INVITE_MAX_AGE: int = 3600  # seconds
HUB_SCAN_LIMIT: int = 50
ROLES_MENU_SCAN_LIMIT: int = 20


def default_vc_name(username: str) -> str:
    """Deterministic voice channel name for *username*."""
    return f"{username[:VC_NAME_MAX_LENGTH]}'s VC"


# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------
COLOR_GREEN: int = 0x2ECC71
COLOR_GOLD: int = 0xFFD700
COLOR_BLUE: int = 0x3498DB
COLOR_PURPLE: int = 0x9B59B6

LEVEL_ROLE_COLOR: int = COLOR_BLUE

HUB_TITLE = "🎛️ Voice Channel Manager"
TICKET_MENU_TITLE = "🎫 Ticketing System"
ROLES_MENU_TITLE = "Choose Your Roles!"
VC_FOOTER = "2Hundy VC Manager"

PRESENCE_INTERVAL_MINUTES: int = 5
