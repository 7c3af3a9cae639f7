"""
hundy.database.seed - Default Documents & Legacy File Import
=============================================================

Makes sure every document exists on startup.  A document that has never
been stored is imported from the bot's old flat JSON file when one is
present in the legacy data directory, otherwise it gets its default body.

Idempotent: documents that already have a row are never touched.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from hundy.database.models import Document, DocumentName

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------
DEFAULT_DOCUMENTS: dict[DocumentName, dict] = {
    DocumentName.XP: {},
    DocumentName.VC_CHANNELS: {},
    DocumentName.TICKETS: {},
    DocumentName.VERIFIED_USERS: {},
    DocumentName.BANNED_WORDS: {"words": []},
}

LEGACY_FILES: dict[DocumentName, str] = {
    DocumentName.XP: "xp.json",
    DocumentName.VC_CHANNELS: "vcChannels.json",
    DocumentName.TICKETS: "tickets.json",
    DocumentName.VERIFIED_USERS: "verifiedUsers.json",
    DocumentName.BANNED_WORDS: "bannedWords.json",
}


def default_body(name: str) -> dict:
    """Return a fresh copy of the default body for document *name*."""
    try:
        return copy.deepcopy(DEFAULT_DOCUMENTS[DocumentName(name)])
    except ValueError:
        return {}


def _read_legacy_file(path: Path) -> dict | None:
    """Parse a legacy JSON file.  Returns None when absent or unusable."""
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text) if text.strip() else {}
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable legacy file %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring legacy file %s: top level is not an object", path)
        return None
    return data


def seed_documents(engine: Engine, legacy_dir: str | Path | None = None) -> dict[str, str]:
    """Ensure every known document has a row.

    Returns a mapping of document name → ``"existing"``, ``"legacy"`` or
    ``"default"`` describing where each document came from.
    """
    sources: dict[str, str] = {}
    base = Path(legacy_dir) if legacy_dir else None

    with Session(engine) as session:
        for name, default in DEFAULT_DOCUMENTS.items():
            if session.get(Document, name.value) is not None:
                sources[name.value] = "existing"
                continue

            body = None
            if base is not None:
                body = _read_legacy_file(base / LEGACY_FILES[name])

            if body is not None:
                sources[name.value] = "legacy"
                logger.info("Imported legacy %s into document '%s'", LEGACY_FILES[name], name.value)
            else:
                body = copy.deepcopy(default)
                sources[name.value] = "default"

            session.add(Document(name=name.value, body=body, revision=1))

        session.commit()

    created = [n for n, s in sources.items() if s != "existing"]
    if created:
        logger.info("Seeded %d document(s): %s", len(created), ", ".join(created))
    return sources
