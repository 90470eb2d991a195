"""
Factories and fakes shared across the StreamPulse test modules.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from core.platform_sources import PlatformSourceError
from shared.followed_streamer import FollowedStreamer, Platform, StreamerCandidate


class FakeClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(minutes=1)
        return self.current


class FakeChzzkSource:
    """Stands in for ChzzkClient, answering searches from a name -> candidates table."""

    def __init__(self, results: Optional[Dict[str, List[StreamerCandidate]]] = None) -> None:
        self.results = results or {}
        self.failing: set = set()
        self.errors: Dict[str, Exception] = {}
        self.calls: List[str] = []

    async def search_channels(self, keyword: str) -> List[StreamerCandidate]:
        self.calls.append(keyword)
        if keyword in self.failing:
            raise PlatformSourceError(f"search for {keyword} failed")
        if keyword in self.errors:
            raise self.errors[keyword]
        return list(self.results.get(keyword, []))


def make_streamer(platform: Platform = Platform.CHZZK, streamer_id: str = "abc123", name: str = "Alpha", **kwargs) -> FollowedStreamer:
    return FollowedStreamer(platform=platform, streamer_id=streamer_id, display_name=name, **kwargs)


def make_candidate(streamer: FollowedStreamer, *, is_live: bool, streamer_id: Optional[str] = None) -> StreamerCandidate:
    return StreamerCandidate(
        platform=streamer.platform,
        streamer_id=streamer_id or streamer.streamer_id,
        display_name=streamer.display_name,
        profile_image_url=streamer.profile_image_url,
        channel_url=streamer.channel_url,
        is_live=is_live,
    )


