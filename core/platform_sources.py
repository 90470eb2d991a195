"""
Live-status sources for the supported streaming platforms.

CHZZK exposes a JSON search API queried over aiohttp. SOOP results come from
an embedded browser owned by the UI layer, so that source is only modelled as
an injected coroutine returning candidates.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Protocol

import aiohttp

from shared.followed_streamer import Platform, StreamerCandidate
from streampulse_core.streampulse_core import logger as app_logger

_LOGGER = app_logger.get_logger()

CHZZK_API_BASE_URL = "https://api.chzzk.naver.com"
CHZZK_SEARCH_PATH = "/service/v1/search/channels"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_RESULT_SIZE = 10
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

ScrapeSearch = Callable[[str], Awaitable[List[StreamerCandidate]]]


class PlatformSourceError(RuntimeError):
    """Raised when a platform could not be queried or returned unusable data."""


class LiveStatusSource(Protocol):
    async def search_channels(self, keyword: str) -> List[StreamerCandidate]:
        ...


class ChzzkClient:
    """
    Async client for the CHZZK channel search API.

    Usage:
        client = ChzzkClient()
        candidates = await client.search_channels("streamer name")
        await client.close()
    """

    platform = Platform.CHZZK

    def __init__(
        self,
        base_url: str = CHZZK_API_BASE_URL,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        result_size: int = DEFAULT_RESULT_SIZE,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.result_size = result_size
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self._headers)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def search_channels(self, keyword: str) -> List[StreamerCandidate]:
        """Search channels by name and return every candidate in result order."""
        params = {"keyword": keyword, "offset": "0", "size": str(self.result_size)}
        session = await self._get_session()
        try:
            async with session.get(
                f"{self.base_url}{CHZZK_SEARCH_PATH}",
                params=params,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as resp:
                if resp.status != 200:
                    raise PlatformSourceError(f"CHZZK search for {keyword!r} returned HTTP {resp.status}")
                body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise PlatformSourceError(f"CHZZK search for {keyword!r} failed: {exc!r}") from exc
        except ValueError as exc:
            raise PlatformSourceError(f"CHZZK search for {keyword!r} returned invalid JSON") from exc

        return parse_chzzk_search(body)


def parse_chzzk_search(body: Any) -> List[StreamerCandidate]:
    """Extract channel candidates from a CHZZK search response body."""
    if not isinstance(body, dict):
        raise PlatformSourceError("CHZZK search response root must be an object.")
    content = body.get("content") or {}
    data = content.get("data") if isinstance(content, dict) else None
    if not isinstance(data, list):
        return []

    candidates: List[StreamerCandidate] = []
    for item in data:
        channel = item.get("channel") if isinstance(item, dict) else None
        if not isinstance(channel, dict):
            continue
        channel_id = str(channel.get("channelId") or "")
        if not channel_id:
            continue
        candidates.append(
            StreamerCandidate(
                platform=Platform.CHZZK,
                streamer_id=channel_id,
                display_name=str(channel.get("channelName") or ""),
                profile_image_url=str(channel.get("channelImageUrl") or ""),
                channel_url=Platform.CHZZK.station_url(channel_id),
                is_live=bool(channel.get("openLive", False)),
                follower_count=_coerce_int(channel.get("followerCount")),
            )
        )
    _LOGGER.debug("CHZZK search returned {} channels", len(candidates))
    return candidates


def _coerce_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
