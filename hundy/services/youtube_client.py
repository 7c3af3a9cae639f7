"""YouTube Data API v3 client: latest upload and live broadcast lookups."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from hundy.services.api_result import ApiResult

logger = logging.getLogger(__name__)

YOUTUBE_API = "https://www.googleapis.com/youtube/v3"


@dataclass(frozen=True, slots=True)
class Video:
    id: str
    title: str
    url: str
    thumbnail: str | None = None


class YouTubeClient:
    def __init__(
        self, api_key: str, channel_id: str, *, http: httpx.AsyncClient | None = None
    ) -> None:
        self.api_key = api_key
        self.channel_id = channel_id
        self._http = http or httpx.AsyncClient(timeout=10.0)

    async def close(self) -> None:
        await self._http.aclose()

    async def _items(self, path: str, params: dict) -> ApiResult[list[dict]]:
        try:
            response = await self._http.get(
                f"{YOUTUBE_API}/{path}", params={**params, "key": self.api_key}
            )
        except httpx.HTTPError as exc:
            logger.warning("YouTube GET /%s error: %s", path, exc)
            return ApiResult.failed(str(exc))
        if response.status_code != 200:
            logger.warning("YouTube GET /%s returned %s", path, response.status_code)
            return ApiResult.failed(f"HTTP {response.status_code}")
        items = response.json().get("items") or []
        return ApiResult.ok(items) if items else ApiResult.empty()

    async def latest_upload(self) -> ApiResult[Video]:
        """Newest video in the channel's uploads playlist."""
        channel = await self._items(
            "channels", {"part": "contentDetails", "id": self.channel_id}
        )
        if not channel.is_ok:
            return ApiResult(channel.status, error=channel.error)
        uploads = (
            channel.data[0].get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")
        )
        if not uploads:
            return ApiResult.empty()

        playlist = await self._items(
            "playlistItems", {"part": "snippet", "playlistId": uploads, "maxResults": 1}
        )
        if not playlist.is_ok:
            return ApiResult(playlist.status, error=playlist.error)

        snippet = playlist.data[0].get("snippet", {})
        video_id = snippet.get("resourceId", {}).get("videoId")
        if not video_id:
            return ApiResult.empty()
        thumbnails = snippet.get("thumbnails", {})
        thumb = (thumbnails.get("high") or thumbnails.get("default") or {}).get("url")
        return ApiResult.ok(
            Video(
                id=video_id,
                title=snippet.get("title", ""),
                url=f"https://www.youtube.com/watch?v={video_id}",
                thumbnail=thumb,
            )
        )

    async def live_broadcast(self) -> ApiResult[dict]:
        """The channel's current live broadcast, EMPTY when not live."""
        result = await self._items(
            "search",
            {"part": "snippet", "channelId": self.channel_id, "eventType": "live", "type": "video"},
        )
        if result.is_ok:
            return ApiResult.ok(result.data[0])
        return ApiResult(result.status, error=result.error)
