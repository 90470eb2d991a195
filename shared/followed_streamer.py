"""
Shared representation of followed streamers, search candidates and the
payload carried by live notifications.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple
from urllib.parse import parse_qsl, urlencode

_LEGACY_PLATFORM_LABELS = {"치지직": "CHZZK"}

_STATION_URLS = {
    "CHZZK": "https://chzzk.naver.com/{streamer_id}",
    "SOOP": "https://www.sooplive.co.kr/station/{streamer_id}",
}

_LABELS = {
    "CHZZK": "CHZZK",
    "SOOP": "SOOP",
}


class Platform(Enum):
    CHZZK = "CHZZK"
    SOOP = "SOOP"

    @classmethod
    def parse(cls, value: "Platform | str") -> "Platform":
        """Resolve an enum member from its name, value or a legacy label."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unsupported platform value: {value!r}")
        text = value.strip()
        text = _LEGACY_PLATFORM_LABELS.get(text, text)
        for member in cls:
            if text.upper() in (member.name, member.value.upper()):
                return member
        raise ValueError(f"Unknown platform: {value!r}")

    @property
    def label(self) -> str:
        return _LABELS[self.value]

    def station_url(self, streamer_id: str) -> str:
        return _STATION_URLS[self.value].format(streamer_id=streamer_id)


FollowKey = Tuple[Platform, str]


@dataclass(eq=False)
class FollowedStreamer:
    """
    A streamer the user follows, together with the last observed live state.

    ``is_checking_live_status`` is a transient UI hint and is never persisted.
    """

    platform: Platform
    streamer_id: str
    display_name: str = ""
    profile_image_url: str = ""
    channel_url: str = ""
    is_live: bool = False
    last_checked: Optional[datetime] = None
    followed_at: datetime = field(default_factory=lambda: datetime.now().astimezone())
    is_checking_live_status: bool = field(default=False, repr=False)

    def __post_init__(self) -> None:
        self.platform = Platform.parse(self.platform)
        if not self.channel_url and self.streamer_id:
            self.channel_url = self.platform.station_url(self.streamer_id)

    @property
    def key(self) -> FollowKey:
        return self.platform, self.streamer_id

    def matches(self, platform: Platform | str, streamer_id: str) -> bool:
        return self.platform is Platform.parse(platform) and self.streamer_id == streamer_id

    @property
    def status_text(self) -> str:
        if self.is_checking_live_status:
            return "Checking..."
        return "LIVE" if self.is_live else "Offline"

    def menu_label(self, *, showcase: bool = False) -> str:
        name = showcase_name(self.display_name, self.platform) if showcase else self.display_name
        return f"{name} ({self.platform.label}) - {self.status_text}"


@dataclass(slots=True)
class StreamerCandidate:
    """A single result returned by a platform search or scrape."""

    platform: Platform
    streamer_id: str
    display_name: str = ""
    profile_image_url: str = ""
    channel_url: str = ""
    is_live: bool = False
    follower_count: int = 0


_SHOWCASE_PREFIXES = ("Streamer", "Creator", "Broadcaster", "BJ", "Stream")


def showcase_name(display_name: str, platform: Platform | str) -> str:
    """
    Stable pseudonym shown in place of a real name while showcase mode is on.

    The same name and platform always give the same pseudonym.
    """
    resolved = Platform.parse(platform)
    digest = hashlib.sha256(f"{resolved.value}:{display_name}".encode("utf-8")).digest()
    prefix = _SHOWCASE_PREFIXES[digest[0] % len(_SHOWCASE_PREFIXES)]
    number = int.from_bytes(digest[1:3], "big") % 999 + 1
    return f"{prefix}{number}"


VIEW_STREAM_ACTION = "viewStream"


@dataclass(frozen=True)
class NotificationPayload:
    """Deep-link data surfaced back to the application when a notification is clicked."""

    platform: Platform
    streamer_id: str
    url: str
    action: str = VIEW_STREAM_ACTION

    @classmethod
    def for_streamer(cls, streamer: FollowedStreamer) -> "NotificationPayload":
        return cls(platform=streamer.platform, streamer_id=streamer.streamer_id, url=streamer.channel_url)

    def to_arguments(self) -> str:
        return urlencode(
            {
                "action": self.action,
                "platform": self.platform.value,
                "streamerId": self.streamer_id,
                "url": self.url,
            }
        )

    @classmethod
    def from_arguments(cls, arguments: str) -> "NotificationPayload":
        values: Dict[str, str] = dict(parse_qsl(arguments, keep_blank_values=True))
        try:
            return cls(
                platform=Platform.parse(values["platform"]),
                streamer_id=values["streamerId"],
                url=values.get("url", ""),
                action=values.get("action", VIEW_STREAM_ACTION),
            )
        except KeyError as exc:
            raise ValueError(f"Notification arguments missing {exc.args[0]!r}") from exc
