"""
Schema helpers for the persisted follow list shared by the runtime and CLI.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .followed_streamer import FollowedStreamer, Platform


class FollowRecordError(ValueError):
    """Raised when the persisted follow list is missing required data or is malformed."""


_FRACTION_PATTERN = re.compile(r"(\.\d{6})\d+")


def parse_follow_document(contents: str) -> List[FollowedStreamer]:
    """
    Parse the JSON text of a follow file into entries.

    Whitespace-only input is treated as an empty list. Any structural problem
    raises FollowRecordError so the caller can quarantine the whole file.
    """
    if not contents.strip():
        return []

    try:
        raw = json.loads(contents)
    except json.JSONDecodeError as exc:
        raise FollowRecordError(f"Follow list is not valid JSON: {exc}") from exc

    if not isinstance(raw, list):
        raise FollowRecordError("Follow list root must be a JSON array.")

    return [parse_follow_record(item, index=index) for index, item in enumerate(raw)]


def parse_follow_record(raw: Any, *, index: int = 0) -> FollowedStreamer:
    if not isinstance(raw, dict):
        raise FollowRecordError(f"Follow record #{index} must be a JSON object.")

    record = _casefold_keys(raw)

    platform_value = _require_string(record.get("platform"), field="platform", index=index, required=True)
    try:
        platform = Platform.parse(platform_value)
    except ValueError as exc:
        raise FollowRecordError(f"Follow record #{index} has unknown platform {platform_value!r}.") from exc

    streamer_id = _require_string(record.get("streamerid"), field="streamerId", index=index, required=True)

    followed_at = _optional_timestamp(record.get("followedat"), field="followedAt", index=index)
    entry = FollowedStreamer(
        platform=platform,
        streamer_id=streamer_id,
        display_name=_require_string(record.get("streamername"), field="streamerName", index=index, required=False),
        profile_image_url=_require_string(
            record.get("profileimageurl"), field="profileImageUrl", index=index, required=False
        ),
        channel_url=_require_string(record.get("channelurl"), field="channelUrl", index=index, required=False),
        is_live=bool(record.get("islive", False)),
        last_checked=_optional_timestamp(record.get("lastchecked"), field="lastChecked", index=index),
    )
    if followed_at is not None:
        entry.followed_at = followed_at
    return entry


def dump_follow_document(entries: Iterable[FollowedStreamer]) -> str:
    return json.dumps([to_follow_record(entry) for entry in entries], indent=2, ensure_ascii=False)


def to_follow_record(entry: FollowedStreamer) -> Dict[str, Any]:
    return {
        "platform": entry.platform.value,
        "streamerId": entry.streamer_id,
        "streamerName": entry.display_name,
        "profileImageUrl": entry.profile_image_url,
        "channelUrl": entry.channel_url,
        "isLive": entry.is_live,
        "lastChecked": format_timestamp(entry.last_checked),
        "followedAt": format_timestamp(entry.followed_at),
    }


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp.

    Accepts a trailing 'Z' and fractional seconds with more than six digits,
    which are truncated to microseconds.
    """
    cleaned = value.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    cleaned = _FRACTION_PATTERN.sub(r"\1", cleaned)
    return datetime.fromisoformat(cleaned)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def _optional_timestamp(value: Any, *, field: str, index: int) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise FollowRecordError(f"Follow record #{index}: {field} must be a string.")
    try:
        parsed = parse_timestamp(value)
    except ValueError as exc:
        raise FollowRecordError(f"Follow record #{index}: {field} is not an ISO-8601 timestamp.") from exc
    if parsed.year <= 1:
        return None
    return parsed


def _require_string(value: Any, *, field: str, index: int, required: bool) -> str:
    if value is None:
        if required:
            raise FollowRecordError(f"Follow record #{index}: {field} is required.")
        return ""

    if not isinstance(value, str):
        raise FollowRecordError(f"Follow record #{index}: {field} must be a string.")

    stripped = value.strip()
    if required and stripped == "":
        raise FollowRecordError(f"Follow record #{index}: {field} must be a non-empty string.")
    return stripped


def _casefold_keys(raw: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(key).casefold(): value for key, value in raw.items()}
