"""
Hundy - Community Bot for the 2Hundy Discord
=============================================
Awards XP for participation, moderates banned content and spam, runs
owner-controlled temporary voice channels and a support-ticket desk, and
links members to their Twitch account for subscriber/follower roles.

Package layout::

    hundy/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Leveling formula, escalation ladder, colors
    ├── errors.py          # User-facing error taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # Document table
    │   └── seed.py        # Defaults + legacy JSON file import
    ├── engine/
    │   ├── events.py      # Immutable event snapshots
    │   ├── moderation.py  # Spam/violation classification + offense counter
    │   └── leveling.py    # XP accrual, level thresholds, leaderboard
    ├── services/
    │   ├── document_store.py  # Locked read-modify-write over documents
    │   ├── moderation_service.py  # Delete, timeout, notify
    │   ├── xp_service.py          # Awards, level-up roles
    │   ├── voice_service.py       # Owner-controlled temporary VCs
    │   ├── ticket_service.py
    │   ├── account_service.py     # Discord ↔ Twitch links
    │   ├── verification_service.py
    │   ├── api_result.py          # ok / empty / error tagging
    │   ├── twitch_client.py
    │   ├── youtube_client.py
    │   ├── community_service.py   # Reaction roles, socials, presence
    │   ├── menus.py       # Post-once menu messages
    │   ├── embeds.py      # Embed builders
    │   └── controls.py    # Button rows and modals
    └── bot/
        ├── __main__.py    # Entry point
        ├── core.py        # Bot subclass, cog loader
        ├── dispatch.py    # Button / modal custom-id router
        └── cogs/
            ├── messages.py     # on_message: moderation → XP, /clear
            ├── leveling.py     # /rank, /leaderboard
            ├── voice.py        # VC hub, controls, startup recovery
            ├── tickets.py      # Ticket menu, open/close buttons
            ├── verification.py # /verify
            └── community.py    # /rsocial, /guidelines, reaction roles, presence
"""

__version__ = "0.1.0"
