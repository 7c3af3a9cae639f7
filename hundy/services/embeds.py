"""
hundy.services.embeds - Discord embed builders
===============================================

All embed construction lives here so services and cogs only supply data.
"""

from __future__ import annotations

import discord

from hundy.constants import (
    COLOR_BLUE,
    COLOR_GOLD,
    COLOR_GREEN,
    COLOR_PURPLE,
    HUB_TITLE,
    ROLES_MENU_TITLE,
    TICKET_MENU_TITLE,
    VC_FOOTER,
    VOICE_MIN_LEVEL,
)
from hundy.engine.leveling import ExperienceRecord

GUIDELINES: list[tuple[str, str]] = [
    (
        "1 | Discord Terms of Service",
        "We as a community follow the Discord Terms of Service & Community Guidelines, "
        "failure to do so yourself will result in moderation such as a potential removal "
        "from the server.",
    ),
    (
        "2 | Discrimination",
        "Discrimination of any kind will not be tolerated, we are strictly against any forms "
        "of racism, sexism or prejudice behaviour towards any individual.",
    ),
    (
        "3 | Under 13",
        "Any individuals under the age of 13 will be removed from the server as per Discord "
        "Terms of Service.",
    ),
    (
        "4 | Spamming & Mass Mentioning",
        "Any spamming or mass mentioning of other users or moderation & administration will "
        "result in a timeout 1 hour, if continued you will be kicked from the server.",
    ),
    (
        "5 | NSFW & Obscene Content",
        "Content that depicts gore, sexual & explicit content will result in a permanent ban "
        "from the community, we'll also enforce any sexually motivated messages.",
    ),
    (
        "6 | Support",
        "Support can be contacted via our tickets system, however, only contact support if it "
        "is absolutely vital or if you are trying to report a member of the server for a "
        "violation of our guidelines and a member of staff hadn't been in chat at the time.",
    ),
    (
        "\U0001f6e1️ Moderator's Discretion",
        "Moderators have authorisation to moderate users on their ultimate say on a per case "
        "basis, however if you believe you were unfairly moderated, contact the Head of "
        "Moderation or an Administrator.",
    ),
]


def build_vc_hub_embed() -> discord.Embed:
    embed = discord.Embed(
        title=HUB_TITLE,
        description=(
            "Create and manage your own custom voice channel using the buttons below.\n\n"
            f"⚠️ You must be at least **Level {VOICE_MIN_LEVEL}** to create a VC."
        ),
        color=COLOR_GREEN,
        timestamp=discord.utils.utcnow(),
    )
    embed.set_footer(text=VC_FOOTER)
    return embed


def build_vc_controller_embed(owner_name: str, voice_channel_id: int | None) -> discord.Embed:
    """Controller card posted in an owner's private control channel."""
    target = f"<#{voice_channel_id}>" if voice_channel_id else "❓ Unknown VC"
    embed = discord.Embed(
        title=f"{owner_name}'s VC Controller",
        description=f"Manage your voice channel: {target}\n\nUse the buttons below to control your VC.",
        color=COLOR_GREEN,
        timestamp=discord.utils.utcnow(),
    )
    embed.set_footer(text=VC_FOOTER)
    return embed


def build_ticket_menu_embed() -> discord.Embed:
    embed = discord.Embed(
        title=TICKET_MENU_TITLE,
        description="Welcome! Click the button below to open a ticket.",
        color=COLOR_GREEN,
        timestamp=discord.utils.utcnow(),
    )
    embed.set_footer(text="Support without clutter")
    return embed


def build_leaderboard_embed(
    entries: list[tuple[str, ExperienceRecord]], community_name: str
) -> discord.Embed:
    """Top members by XP, one line each."""
    lines = [
        f"**{i}.** <@{user_id}> | Level: **{record.level}** | XP: **{record.xp:.2f}**"
        for i, (user_id, record) in enumerate(entries, 1)
    ]
    embed = discord.Embed(
        title="\U0001f3c6 XP Leaderboard",
        description="\n".join(lines) or "No data yet! Start chatting to appear on the leaderboard.",
        color=COLOR_GOLD,
        timestamp=discord.utils.utcnow(),
    )
    embed.set_footer(text=f"{community_name} XP System")
    return embed


def build_guidelines_embed(community_name: str, image_url: str = "") -> discord.Embed:
    embed = discord.Embed(
        title=f"Guidelines @ {community_name}",
        color=COLOR_PURPLE,
        timestamp=discord.utils.utcnow(),
    )
    if image_url:
        embed.set_image(url=image_url)
    for name, value in GUIDELINES:
        embed.add_field(name=name, value=value, inline=False)
    embed.set_footer(text=community_name)
    return embed


def build_roles_menu_embed(community_name: str, emoji_labels: dict[str, str]) -> discord.Embed:
    """Reaction-role menu; *emoji_labels* maps emoji → description."""
    lines = "\n".join(f"{emoji} - {label}" for emoji, label in emoji_labels.items())
    embed = discord.Embed(
        title=ROLES_MENU_TITLE,
        description=f"React to get or remove roles:\n\n{lines}",
        color=COLOR_BLUE,
        timestamp=discord.utils.utcnow(),
    )
    embed.set_footer(text=f"{community_name} Roles")
    return embed
