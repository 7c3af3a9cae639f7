"""
hundy.config - YAML Configuration Loader
=========================================

**Why this file exists:**
This module reads ``config.yaml`` for the guild-specific settings (channel
and role snowflakes, Twitch/YouTube identities, menu placement).  Secrets
(bot token, API keys, database URL) stay in ``.env`` and are read with
``os.getenv`` at the call site.

Usage::

    from hundy.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.community_name)    # "2Hundy Gang"
    print(cfg.voice_menu_channel_id)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml


def _opt_int(raw: dict, key: str) -> int | None:
    value = raw.get(key)
    return int(value) if value else None


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class HundyConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # Discord
    guild_id: int

    # Staff role that can see tickets and VC control channels
    staff_role_id: int | None = None

    # Menu / surface channels
    ticket_menu_channel_id: int | None = None
    voice_menu_channel_id: int | None = None
    socials_channel_id: int | None = None
    guidelines_channel_id: int | None = None
    roles_menu_channel_id: int | None = None

    # Roles granted by verification and reactions
    subscriber_role_id: int | None = None
    follower_role_name: str = "KingJim"
    guidelines_role_name: str = "Not a Waste Man"
    reaction_roles: dict[str, int] = field(default_factory=dict)  # emoji → role id

    # Streaming / video platforms
    twitch_login: str = ""
    twitch_broadcaster_id: str = ""
    youtube_channel_id: str = ""

    # Account linking web endpoint (separate process)
    oauth_base_url: str = ""

    guidelines_image_url: str = ""

    # Where the pre-database JSON files live (imported once on first start)
    legacy_data_dir: str = "."

    post_socials_on_ready: bool = False


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> HundyConfig:
    """Read *path* and return a :class:`HundyConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key (``community_name``, ``guild_id``) is missing.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    reaction_roles = {
        str(emoji): int(role_id)
        for emoji, role_id in (raw.get("reaction_roles") or {}).items()
        if role_id
    }

    return HundyConfig(
        community_name=raw["community_name"],
        guild_id=int(raw["guild_id"]),
        staff_role_id=_opt_int(raw, "staff_role_id"),
        ticket_menu_channel_id=_opt_int(raw, "ticket_menu_channel_id"),
        voice_menu_channel_id=_opt_int(raw, "voice_menu_channel_id"),
        socials_channel_id=_opt_int(raw, "socials_channel_id"),
        guidelines_channel_id=_opt_int(raw, "guidelines_channel_id"),
        roles_menu_channel_id=_opt_int(raw, "roles_menu_channel_id"),
        subscriber_role_id=_opt_int(raw, "subscriber_role_id"),
        follower_role_name=raw.get("follower_role_name") or "KingJim",
        guidelines_role_name=raw.get("guidelines_role_name") or "Not a Waste Man",
        reaction_roles=reaction_roles,
        twitch_login=str(raw.get("twitch_login") or ""),
        twitch_broadcaster_id=str(raw.get("twitch_broadcaster_id") or ""),
        youtube_channel_id=str(raw.get("youtube_channel_id") or ""),
        oauth_base_url=str(raw.get("oauth_base_url") or "").rstrip("/"),
        guidelines_image_url=str(raw.get("guidelines_image_url") or ""),
        legacy_data_dir=str(raw.get("legacy_data_dir") or "."),
        post_socials_on_ready=bool(raw.get("post_socials_on_ready", False)),
    )
