"""
Persistence layer for the follow list using a JSON file in the application data directory.

The store owns the single in-memory follow list. ``update_live_status`` is the
only place the live flag of an entry changes; it returns whether the change is
an offline to live edge that should produce a notification.
"""

from __future__ import annotations

import os
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from shared.app_paths import APP_DATA_DIR, FOLLOWS_FILE_NAME
from shared.follow_schema import FollowRecordError, dump_follow_document, parse_follow_document
from shared.followed_streamer import FollowedStreamer, Platform
from streampulse_core.streampulse_core import logger as app_logger

_LOGGER = app_logger.get_logger()

DEFAULT_FOLLOWS_PATH = APP_DATA_DIR / FOLLOWS_FILE_NAME
DEFAULT_MAX_SAVE_RETRIES = 3
DEFAULT_SAVE_RETRY_DELAY_SECONDS = 0.1
BACKUP_SUFFIX = ".bak"


def _local_now() -> datetime:
    return datetime.now().astimezone()


class FollowStore:
    """Owns the follow list and keeps the JSON file in sync with it."""

    def __init__(
        self,
        path: Path = DEFAULT_FOLLOWS_PATH,
        *,
        max_save_retries: int = DEFAULT_MAX_SAVE_RETRIES,
        save_retry_delay_seconds: float = DEFAULT_SAVE_RETRY_DELAY_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.path = Path(path)
        self.max_save_retries = max(1, max_save_retries)
        self.save_retry_delay_seconds = save_retry_delay_seconds
        self._clock = clock or _local_now
        self._entries: List[FollowedStreamer] = []
        self._lock = threading.RLock()

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + BACKUP_SUFFIX)

    def load(self) -> List[FollowedStreamer]:
        """
        Read the follow list from disk.

        A missing file yields an empty list. A malformed file is moved aside to
        ``<name>.bak`` and an empty list is used instead. Every entry starts
        offline because nothing is known about streams while the app was closed.
        """
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                contents = self.path.read_text(encoding="utf-8")
            except FileNotFoundError:
                self._entries = []
                return self._entries
            except OSError as exc:
                _LOGGER.error("Unable to read follow list {}: {}", self.path, exc)
                self._entries = []
                return self._entries

            try:
                loaded = parse_follow_document(contents)
            except FollowRecordError as exc:
                _LOGGER.error("Follow list {} is malformed ({}); starting with an empty list.", self.path, exc)
                self._quarantine_corrupt_file()
                self._entries = []
                return self._entries

            entries: List[FollowedStreamer] = []
            seen = set()
            for entry in loaded:
                if entry.key in seen:
                    _LOGGER.warning(
                        "Ignoring duplicate follow record {}:{} in {}",
                        entry.platform.value,
                        entry.streamer_id,
                        self.path,
                    )
                    continue
                seen.add(entry.key)
                entry.is_live = False
                entries.append(entry)

            self._entries = entries
            _LOGGER.info("Loaded {} followed streamers; live state reset until the next check.", len(entries))
            return self._entries

    def save(self, entries: Optional[Sequence[FollowedStreamer]] = None) -> bool:
        """
        Write the full follow list to disk, retrying while the file is locked.

        Returns False when every attempt failed. Failures are logged, never raised.
        """
        with self._lock:
            snapshot = list(self._entries if entries is None else entries)
            try:
                document = dump_follow_document(snapshot)
            except (TypeError, ValueError) as exc:
                _LOGGER.error("Failed to serialise follow list: {}", exc)
                return False

            for attempt in range(1, self.max_save_retries + 1):
                try:
                    self._write_atomically(document)
                    return True
                except OSError as exc:
                    if attempt >= self.max_save_retries:
                        _LOGGER.error(
                            "Failed to save follow list to {} after {} attempts: {}",
                            self.path,
                            attempt,
                            exc,
                        )
                        return False
                    _LOGGER.debug(
                        "Retrying follow list save ({}/{}): {}",
                        attempt,
                        self.max_save_retries,
                        exc,
                    )
                    time.sleep(self.save_retry_delay_seconds)
            return False

    def add(self, entry: FollowedStreamer) -> bool:
        with self._lock:
            if self._find(entry.platform, entry.streamer_id) is not None:
                return False
            self._entries.append(entry)
            self.save()
        _LOGGER.info("Now following {} ({}:{})", entry.display_name, entry.platform.value, entry.streamer_id)
        return True

    def remove(self, platform: Platform | str, streamer_id: str) -> bool:
        with self._lock:
            entry = self._find(platform, streamer_id)
            if entry is None:
                return False
            self._entries.remove(entry)
            self.save()
        _LOGGER.info("Unfollowed {} ({}:{})", entry.display_name, entry.platform.value, entry.streamer_id)
        return True

    def is_following(self, platform: Platform | str, streamer_id: str) -> bool:
        with self._lock:
            return self._find(platform, streamer_id) is not None

    def get(self, platform: Platform | str, streamer_id: str) -> Optional[FollowedStreamer]:
        with self._lock:
            return self._find(platform, streamer_id)

    def update_live_status(self, platform: Platform | str, streamer_id: str, observed_is_live: bool) -> bool:
        """
        Record a live-status observation and report whether to notify.

        Returns True only for an offline to live transition. Unknown entries,
        for example a streamer unfollowed while a check was running, are ignored.
        """
        with self._lock:
            entry = self._find(platform, streamer_id)
            if entry is None:
                return False

            was_offline = not entry.is_live
            entry.is_live = bool(observed_is_live)
            entry.last_checked = self._clock()
            self.save()

        should_notify = was_offline and entry.is_live
        if should_notify:
            _LOGGER.info("{} went live ({}:{})", entry.display_name, entry.platform.value, entry.streamer_id)
        return should_notify

    def update_profile(
        self,
        platform: Platform | str,
        streamer_id: str,
        *,
        display_name: Optional[str] = None,
        profile_image_url: Optional[str] = None,
        channel_url: Optional[str] = None,
    ) -> bool:
        """Refresh mutable metadata of an entry. Saves only when something changed."""
        with self._lock:
            entry = self._find(platform, streamer_id)
            if entry is None:
                return False

            changed = False
            for attribute, value in (
                ("display_name", display_name),
                ("profile_image_url", profile_image_url),
                ("channel_url", channel_url),
            ):
                if value and getattr(entry, attribute) != value:
                    setattr(entry, attribute, value)
                    changed = True

            if changed:
                self.save()
        return changed

    def get_all(self) -> List[FollowedStreamer]:
        """
        Return the owned follow list sorted live-first, then by name.

        The list is sorted in place so holders of the same list object observe
        the new order without re-fetching.
        """
        with self._lock:
            self._entries.sort(key=lambda entry: (not entry.is_live, entry.display_name))
            return self._entries

    def snapshot(self) -> List[FollowedStreamer]:
        """Return a sorted copy of the follow list, safe to iterate from any thread."""
        with self._lock:
            return list(self.get_all())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _find(self, platform: Platform | str, streamer_id: str) -> Optional[FollowedStreamer]:
        resolved = Platform.parse(platform)
        return next((entry for entry in self._entries if entry.matches(resolved, streamer_id)), None)

    def _write_atomically(self, document: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_name(self.path.name + ".tmp")
        temp_path.write_text(document, encoding="utf-8")
        os.replace(temp_path, self.path)

    def _quarantine_corrupt_file(self) -> None:
        try:
            os.replace(self.path, self.backup_path)
            _LOGGER.warning("Moved corrupt follow list to {}", self.backup_path)
        except OSError as exc:
            _LOGGER.error("Unable to back up corrupt follow list {}: {}", self.path, exc)
