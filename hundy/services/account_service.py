"""
hundy.services.account_service - Account Linker
================================================

Maps Discord members to their Twitch account.  The ``verified_users``
document is written by the external OAuth linking flow; the bot only reads
it, except through :meth:`AccountLinker.link` and
:meth:`AccountLinker.link_from_connections`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from hundy.database.models import DocumentName
from hundy.errors import NotFound
from hundy.services.document_store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LinkedAccount:
    user_id: int
    twitch_id: str
    twitch_name: str
    access_token: str | None = None


class AccountLinker:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def lookup(self, user_id: int) -> LinkedAccount | None:
        raw = (await self.store.read(DocumentName.VERIFIED_USERS)).get(str(user_id))
        if not raw or not raw.get("twitchId"):
            return None
        return LinkedAccount(
            user_id=int(user_id),
            twitch_id=str(raw["twitchId"]),
            twitch_name=raw.get("twitchName", ""),
            access_token=raw.get("twitchAccessToken") or None,
        )

    async def link(
        self,
        user_id: int,
        twitch_id: str,
        twitch_name: str,
        access_token: str | None = None,
    ) -> LinkedAccount:
        entry = {"twitchId": str(twitch_id), "twitchName": twitch_name}
        if access_token:
            entry["twitchAccessToken"] = access_token
        async with self.store.edit(DocumentName.VERIFIED_USERS) as users:
            users[str(user_id)] = entry
        logger.info("Linked %s to Twitch account %s", user_id, twitch_id)
        return LinkedAccount(int(user_id), str(twitch_id), twitch_name, access_token)

    async def link_from_connections(
        self, user_id: int, connections: list[dict], access_token: str | None = None
    ) -> LinkedAccount:
        """Link from a Discord ``/users/@me/connections`` payload."""
        twitch = next((c for c in connections or [] if c.get("type") == "twitch"), None)
        if twitch is None or not twitch.get("id"):
            raise NotFound("❌ No Twitch account is connected to your Discord profile.")
        return await self.link(user_id, twitch["id"], twitch.get("name", ""), access_token)
