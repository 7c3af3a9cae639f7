"""
hundy.bot.__main__ - Entry point for ``python -m hundy.bot``
=============================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Seed documents (legacy JSON import on first start, defaults otherwise).
5. Load the banned-word list once.
6. Build the optional Twitch / YouTube clients.
7. Create the HundyBot and run it (blocking).
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from hundy.bot.core import HundyBot
from hundy.config import load_config
from hundy.database.engine import create_db_engine, init_db
from hundy.database.models import DocumentName
from hundy.database.seed import seed_documents
from hundy.engine.moderation import BannedWordList
from hundy.services.document_store import load_document
from hundy.services.twitch_client import TwitchClient
from hundy.services.youtube_client import YouTubeClient

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("hundy")


def main() -> None:
    """Bootstrap and run the bot."""

    # 1. Secrets.
    load_dotenv()

    token = os.getenv("DISCORD_TOKEN")
    if not token or token == "your-discord-bot-token-here":
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)

    # 2. Soft configuration.
    cfg = load_config()
    logger.info("Config loaded - Community: %s", cfg.community_name)

    # 3. Database.
    engine = create_db_engine()
    init_db(engine)

    # 4. Documents.
    seeded = seed_documents(engine, cfg.legacy_data_dir)
    logger.info("Documents ready: %s", ", ".join(f"{k}={v}" for k, v in seeded.items()))

    # 5. Banned words (immutable for the life of the process).
    banned = BannedWordList.from_document(load_document(engine, DocumentName.BANNED_WORDS).body)
    logger.info("Loaded %d banned words", len(banned))

    # 6. External clients.
    twitch = None
    client_id = os.getenv("TWITCH_CLIENT_ID")
    client_secret = os.getenv("TWITCH_CLIENT_SECRET")
    if client_id and client_secret:
        twitch = TwitchClient(client_id, client_secret, cfg.twitch_broadcaster_id or None)
    else:
        logger.warning("Twitch credentials not set; /verify and live presence are disabled")

    youtube = None
    api_key = os.getenv("YOUTUBE_API_KEY")
    if api_key and cfg.youtube_channel_id:
        youtube = YouTubeClient(api_key, cfg.youtube_channel_id)

    # 7. Bot.
    bot = HundyBot(cfg=cfg, engine=engine, banned_words=banned, twitch=twitch, youtube=youtube)

    logger.info("Starting bot…")
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
