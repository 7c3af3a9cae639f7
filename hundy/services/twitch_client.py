"""
hundy.services.twitch_client - Twitch Helix client
===================================================

Token types:

- App access token: client-credentials grant, cached and refreshed five
  minutes before it expires.
- User access token: stored per member by the external linking flow; used
  for the subscription check when present.

Every endpoint returns an :class:`~hundy.services.api_result.ApiResult`.
"""

from __future__ import annotations

import asyncio
import logging
import time

import httpx

from hundy.services.api_result import ApiResult

logger = logging.getLogger(__name__)

HELIX_BASE = "https://api.twitch.tv/helix"
OAUTH_BASE = "https://id.twitch.tv/oauth2"

TOKEN_REFRESH_MARGIN = 300  # seconds


class TwitchClient:
    """Shared ``httpx.AsyncClient`` plus a cached app token."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        broadcaster_id: str | None = None,
        *,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        if not client_id or not client_secret:
            raise ValueError("Twitch client_id and client_secret are required")
        self.client_id = client_id
        self.client_secret = client_secret
        self.broadcaster_id = broadcaster_id
        self._http = http or httpx.AsyncClient(timeout=10.0)

        self._app_token: str | None = None
        self._app_token_expires_at: float = 0.0
        self._app_token_lock = asyncio.Lock()

    async def close(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Client-Id": self.client_id}

    async def app_token(self) -> str | None:
        """Return a cached app access token, fetching a new one when expired."""
        now = time.monotonic()
        if self._app_token and now < self._app_token_expires_at:
            return self._app_token

        async with self._app_token_lock:
            now = time.monotonic()
            if self._app_token and now < self._app_token_expires_at:
                return self._app_token
            try:
                response = await self._http.post(
                    f"{OAUTH_BASE}/token",
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "grant_type": "client_credentials",
                    },
                )
            except httpx.HTTPError as exc:
                logger.warning("App token request failed: %s", exc)
                return None
            if response.status_code != 200:
                logger.error("Failed to get app token: %s", response.status_code)
                return None

            data = response.json()
            self._app_token = data.get("access_token")
            expires_in = int(data.get("expires_in", 0) or 0)
            self._app_token_expires_at = now + max(expires_in - TOKEN_REFRESH_MARGIN, 0)
            return self._app_token

    async def _helix_get(
        self, path: str, params: dict, *, token: str | None = None
    ) -> ApiResult[list[dict]]:
        """GET a Helix collection; empty ``data`` is tagged EMPTY."""
        if token is None:
            token = await self.app_token()
            if not token:
                return ApiResult.failed("no app token")
        try:
            response = await self._http.get(
                f"{HELIX_BASE}/{path}", params=params, headers=self._headers(token)
            )
        except httpx.HTTPError as exc:
            logger.warning("Helix GET /%s error: %s", path, exc)
            return ApiResult.failed(str(exc))

        if response.status_code == 404:
            return ApiResult.empty()
        if response.status_code != 200:
            logger.warning("Helix GET /%s returned %s", path, response.status_code)
            return ApiResult.failed(f"HTTP {response.status_code}")

        rows = response.json().get("data") or []
        return ApiResult.ok(rows) if rows else ApiResult.empty()

    @staticmethod
    def _first(result: ApiResult[list[dict]]) -> ApiResult[dict]:
        if result.is_ok:
            return ApiResult.ok(result.data[0])
        return ApiResult(result.status, error=result.error)

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------
    async def get_user(self, twitch_id: str, token: str | None = None) -> ApiResult[dict]:
        return self._first(await self._helix_get("users", {"id": twitch_id}, token=token))

    async def get_subscription(self, user_id: str, token: str | None = None) -> ApiResult[dict]:
        """The member's subscription to the broadcaster, EMPTY if none."""
        params = {"broadcaster_id": self.broadcaster_id, "user_id": user_id}
        return self._first(await self._helix_get("subscriptions", params, token=token))

    async def get_follower(self, user_id: str, token: str | None = None) -> ApiResult[dict]:
        params = {"broadcaster_id": self.broadcaster_id, "user_id": user_id}
        return self._first(await self._helix_get("channels/followers", params, token=token))

    async def get_stream(self) -> ApiResult[dict]:
        """The broadcaster's live stream, EMPTY when offline."""
        return self._first(await self._helix_get("streams", {"user_id": self.broadcaster_id}))
