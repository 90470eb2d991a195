"""
Hosts the live checker on a private asyncio loop and relays its events as Qt signals.
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from typing import Any, Coroutine, Optional

from PySide6.QtCore import QObject, Signal

from core.follow_store import FollowStore
from core.live_checker import DEFAULT_CHECK_INTERVAL_MINUTES, FollowLiveChecker
from core.platform_sources import ChzzkClient, ScrapeSearch
from shared.followed_streamer import NotificationPayload
from streampulse_core.streampulse_core import logger as app_logger

_SHUTDOWN_TIMEOUT_SECONDS = 5.0


class LiveCheckerHost(QObject):
    """
    Runs the checker, its timer and the HTTP session on one background loop.

    Store writes from a cycle run on the loop's default executor so a locked
    follows file never stalls the other platform batch. Signals are emitted from
    the loop thread; receivers living in the GUI thread get them through queued
    delivery.
    """

    liveStatusChanged = Signal()
    allChecksCompleted = Signal()
    checkingChanged = Signal(bool)
    notificationRequested = Signal(str, str, object)

    def __init__(
        self,
        store: FollowStore,
        *,
        chzzk_client: Optional[ChzzkClient] = None,
        scrape_search: Optional[ScrapeSearch] = None,
        interval_minutes: int = DEFAULT_CHECK_INTERVAL_MINUTES,
    ) -> None:
        super().__init__()
        self._logger = app_logger.get_logger()
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_loop, name="follow-live-checker", daemon=True)
        self._chzzk_client = chzzk_client or ChzzkClient()
        self.checker = FollowLiveChecker(
            store,
            api_source=self._chzzk_client,
            scrape_search=scrape_search,
            notifier=self._forward_notification,
            interval_minutes=interval_minutes,
        )
        self.checker.add_live_status_listener(self.liveStatusChanged.emit)
        self.checker.add_checks_completed_listener(self.allChecksCompleted.emit)
        self.checker.add_checking_listener(self.checkingChanged.emit)

    def start(self) -> None:
        """Start the loop thread and arm the recurring timer."""
        if self._thread.is_alive():
            return
        self._thread.start()
        self._loop.call_soon_threadsafe(self.checker.start)

    def check_immediately(self) -> Future:
        return self._submit(self.checker.check_immediately())

    def refresh(self) -> Future:
        return self._submit(self.checker.check_all())

    def set_interval_minutes(self, minutes: int) -> None:
        if not self._thread.is_alive():
            self.checker.interval_minutes = minutes
            return
        self._loop.call_soon_threadsafe(setattr, self.checker, "interval_minutes", minutes)

    def shutdown(self) -> None:
        if not self._thread.is_alive():
            # Never started: the loop thread will not close it.
            if self._thread.ident is None and not self._loop.is_closed():
                self._loop.close()
            return
        future = self._submit(self._stop_checker())
        try:
            future.result(timeout=_SHUTDOWN_TIMEOUT_SECONDS)
        except Exception as exc:
            self._logger.warning("Live checker did not stop cleanly: {!r}", exc)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=_SHUTDOWN_TIMEOUT_SECONDS)

    async def _stop_checker(self) -> None:
        self.checker.stop()
        current = asyncio.current_task()
        pending = [task for task in asyncio.all_tasks() if task is not current]
        for task in pending:
            task.cancel()
        if pending:
            self._logger.info("Cancelling {} in-flight live check task(s)", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)
        await self._chzzk_client.close()

    def _submit(self, coro: Coroutine[Any, Any, Any]) -> Future:
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def _forward_notification(self, title: str, body: str, payload: NotificationPayload) -> None:
        self.notificationRequested.emit(title, body, payload)

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._logger.debug("Live checker loop started")
        try:
            self._loop.run_forever()
        finally:
            self._loop.run_until_complete(self._loop.shutdown_default_executor())
            self._loop.close()
            self._logger.debug("Live checker loop closed")
