"""
Periodic live-status checking for followed streamers.
"""

from __future__ import annotations

import asyncio
import threading
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from core.follow_store import FollowStore
from core.interval_timer import IntervalTimer
from core.platform_sources import LiveStatusSource, PlatformSourceError, ScrapeSearch
from shared.followed_streamer import FollowedStreamer, NotificationPayload, Platform, StreamerCandidate
from streampulse_core.streampulse_core import logger as app_logger

_LOGGER = app_logger.get_logger()

DEFAULT_CHECK_INTERVAL_MINUTES = 5
MIN_CHECK_INTERVAL_MINUTES = 1
MAX_CHECK_INTERVAL_MINUTES = 60
DEFAULT_SCRAPE_DELAY_SECONDS = 0.5
LIVE_NOTIFICATION_TITLE = "{name} is live!"

Notifier = Callable[[str, str, NotificationPayload], None]
UiDispatch = Callable[[Callable[[], None]], None]


class CheckerState(Enum):
    IDLE = "idle"
    CHECKING = "checking"


def clamp_interval_minutes(value: int) -> int:
    return max(MIN_CHECK_INTERVAL_MINUTES, min(MAX_CHECK_INTERVAL_MINUTES, int(value)))


def _call_inline(callback: Callable[[], None]) -> None:
    callback()


class FollowLiveChecker:
    """
    Re-checks every followed streamer on a timer and notifies on go-live edges.

    At most one check cycle runs at a time; triggers arriving while a cycle is
    in flight are dropped. Platforms are checked concurrently, but the entries
    of one platform are checked one after another because the scrape-based
    source drives a single shared browser session.
    """

    def __init__(
        self,
        store: FollowStore,
        *,
        api_source: Optional[LiveStatusSource] = None,
        scrape_search: Optional[ScrapeSearch] = None,
        notifier: Optional[Notifier] = None,
        ui_dispatch: Optional[UiDispatch] = None,
        interval_minutes: int = DEFAULT_CHECK_INTERVAL_MINUTES,
        scrape_delay_seconds: float = DEFAULT_SCRAPE_DELAY_SECONDS,
        timer_factory: Callable[..., IntervalTimer] = IntervalTimer,
    ) -> None:
        self.store = store
        self.api_source = api_source
        self.scrape_search = scrape_search
        self.notifier = notifier
        self.scrape_delay_seconds = scrape_delay_seconds
        self._dispatch = ui_dispatch or _call_inline
        self._interval_minutes = clamp_interval_minutes(interval_minutes)
        self._timer = timer_factory(self._interval_minutes * 60, self.check_all)
        self._flight = threading.Lock()
        self._state = CheckerState.IDLE
        self._live_status_listeners: List[Callable[[], None]] = []
        self._checks_completed_listeners: List[Callable[[], None]] = []
        self._checking_listeners: List[Callable[[bool], None]] = []
        self._platform_checks: Dict[Platform, Callable[[List[FollowedStreamer]], Awaitable[None]]] = {
            Platform.CHZZK: self._check_api_streamers,
            Platform.SOOP: self._check_scrape_streamers,
        }

    @property
    def state(self) -> CheckerState:
        return self._state

    @property
    def is_checking(self) -> bool:
        return self._state is CheckerState.CHECKING

    @property
    def interval_minutes(self) -> int:
        return self._interval_minutes

    @interval_minutes.setter
    def interval_minutes(self, value: int) -> None:
        clamped = clamp_interval_minutes(value)
        if clamped != value:
            _LOGGER.debug("Check interval {} clamped to {} minutes", value, clamped)
        self._interval_minutes = clamped
        self._timer.interval_seconds = clamped * 60
        _LOGGER.info("Check interval set to {} minutes", clamped)

    def add_live_status_listener(self, callback: Callable[[], None]) -> None:
        self._live_status_listeners.append(callback)

    def add_checks_completed_listener(self, callback: Callable[[], None]) -> None:
        self._checks_completed_listeners.append(callback)

    def add_checking_listener(self, callback: Callable[[bool], None]) -> None:
        self._checking_listeners.append(callback)

    def start(self) -> None:
        """Arm the recurring timer. Does not run a check by itself."""
        self._timer.start()
        _LOGGER.info("Live checker timer started ({} minute interval)", self._interval_minutes)

    def stop(self) -> None:
        self._timer.stop()
        _LOGGER.info("Live checker timer stopped")

    async def check_immediately(self) -> None:
        """Run one full cycle now, then announce that all follow checks completed."""
        _LOGGER.info("Immediate follow check requested")
        await self.check_all()
        _LOGGER.info("All follow checks completed")
        self._dispatch(lambda: self._emit(self._checks_completed_listeners))

    async def check_all(self) -> bool:
        """
        Run one guarded check cycle over every followed streamer.

        Returns False when the trigger was dropped because a cycle is running.
        """
        if not self._flight.acquire(blocking=False):
            _LOGGER.debug("Live check already in progress; trigger dropped")
            return False

        self._state = CheckerState.CHECKING
        try:
            follows = self.store.snapshot()
            if not follows:
                _LOGGER.debug("Follow list is empty; nothing to check")
                return True

            _LOGGER.info("Checking live status of {} followed streamers", len(follows))
            self._dispatch(lambda: self._set_checking(follows, True))

            batches = self._partition(follows)
            results = await asyncio.gather(
                *(self._run_platform_batch(platform, entries) for platform, entries in batches.items()),
                return_exceptions=True,
            )
            for platform, result in zip(batches, results):
                if isinstance(result, BaseException):
                    _LOGGER.opt(exception=result).error("{} live check batch failed", platform.label)

            _LOGGER.info("Live status check finished")
            self._dispatch(lambda: self._finish_cycle(follows))
        except Exception:
            _LOGGER.exception("Live status check cycle failed")
            self._dispatch(lambda: self._set_checking(self.store.snapshot(), False))
        finally:
            self._state = CheckerState.IDLE
            self._flight.release()
        return True

    def _partition(self, follows: List[FollowedStreamer]) -> Dict[Platform, List[FollowedStreamer]]:
        batches: Dict[Platform, List[FollowedStreamer]] = {}
        for streamer in follows:
            batches.setdefault(streamer.platform, []).append(streamer)
        _LOGGER.debug(
            "Check batches: {}",
            ", ".join(f"{platform.label}={len(entries)}" for platform, entries in batches.items()),
        )
        return batches

    async def _run_platform_batch(self, platform: Platform, streamers: List[FollowedStreamer]) -> None:
        check = self._platform_checks.get(platform)
        if check is None:
            _LOGGER.warning("No live-status check registered for platform {}", platform.value)
            return
        await check(streamers)

    async def _check_api_streamers(self, streamers: List[FollowedStreamer]) -> None:
        if not streamers:
            return
        if self.api_source is None:
            _LOGGER.debug("No API source configured; skipping {} streamers", len(streamers))
            return

        for streamer in streamers:
            try:
                candidates = await self.api_source.search_channels(streamer.display_name)
                match = next((c for c in candidates if c.streamer_id == streamer.streamer_id), None)
                if match is None:
                    _LOGGER.debug("No search result matched {} ({})", streamer.display_name, streamer.streamer_id)
                    continue
                await self._apply_observation(streamer, match)
            except PlatformSourceError as exc:
                _LOGGER.warning("Live check for {} failed: {}", streamer.display_name, exc)
            except Exception:
                _LOGGER.exception("Live check for {} failed unexpectedly", streamer.display_name)

    async def _check_scrape_streamers(self, streamers: List[FollowedStreamer]) -> None:
        if not streamers:
            return
        if self.scrape_search is None:
            _LOGGER.debug("Scrape search unavailable; skipping {} streamers", len(streamers))
            return

        for index, streamer in enumerate(streamers):
            if index:
                await asyncio.sleep(self.scrape_delay_seconds)
            try:
                candidates = await self.scrape_search(streamer.display_name)
            except Exception as exc:
                _LOGGER.warning("Scrape search for {} failed: {!r}", streamer.display_name, exc)
                continue

            try:
                wanted = streamer.streamer_id.casefold()
                match = next((c for c in candidates or [] if c.streamer_id.casefold() == wanted), None)
                if match is None:
                    _LOGGER.debug("No scraped result matched {} ({})", streamer.display_name, streamer.streamer_id)
                    continue
                await self._apply_observation(streamer, match)
            except Exception:
                _LOGGER.exception("Scraped result for {} could not be applied", streamer.display_name)

    async def _apply_observation(self, streamer: FollowedStreamer, candidate: StreamerCandidate) -> None:
        """Feed one observation to the store; file writes run off the event loop."""
        _LOGGER.debug(
            "{} {}: {} (was {})",
            streamer.platform.label,
            streamer.display_name,
            "LIVE" if candidate.is_live else "offline",
            "LIVE" if streamer.is_live else "offline",
        )
        await asyncio.to_thread(
            self.store.update_profile,
            streamer.platform,
            streamer.streamer_id,
            display_name=candidate.display_name,
            profile_image_url=candidate.profile_image_url,
        )
        went_live = await asyncio.to_thread(
            self.store.update_live_status, streamer.platform, streamer.streamer_id, candidate.is_live
        )
        if went_live:
            self._send_live_notification(streamer)

    def _send_live_notification(self, streamer: FollowedStreamer) -> None:
        if self.notifier is None:
            _LOGGER.debug("No notifier configured; {} went live silently", streamer.display_name)
            return
        payload = NotificationPayload.for_streamer(streamer)
        try:
            self.notifier(LIVE_NOTIFICATION_TITLE.format(name=streamer.display_name), streamer.platform.label, payload)
        except Exception:
            _LOGGER.exception("Failed to send live notification for {}", streamer.display_name)
            return
        _LOGGER.info("Live notification sent for {} ({})", streamer.display_name, payload.url)

    def _finish_cycle(self, follows: List[FollowedStreamer]) -> None:
        self._set_checking(follows, False)
        self._emit(self._live_status_listeners)

    def _set_checking(self, follows: List[FollowedStreamer], checking: bool) -> None:
        for streamer in follows:
            streamer.is_checking_live_status = checking
        for callback in list(self._checking_listeners):
            try:
                callback(checking)
            except Exception:
                _LOGGER.exception("Live checker listener failed")

    def _emit(self, listeners: List[Callable[[], None]]) -> None:
        for callback in list(listeners):
            try:
                callback()
            except Exception:
                _LOGGER.exception("Live checker listener failed")
