"""
Application coordinator wiring the follow list, live checker, tray icon and popups.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field, replace
from typing import Deque, Dict, Optional, Tuple

from PySide6.QtCore import QObject, QTimer, QUrl
from PySide6.QtGui import QAction, QActionGroup, QDesktopServices
from PySide6.QtWidgets import QApplication, QMenu, QStyle, QSystemTrayIcon

from core.checker_host import LiveCheckerHost
from core.follow_store import FollowStore
from core.live_checker import LIVE_NOTIFICATION_TITLE
from core.notification_popup import NotificationPopup
from core.platform_sources import ScrapeSearch
from core.settings import AppSettings, SettingsManager
from shared.followed_streamer import NotificationPayload, VIEW_STREAM_ACTION, showcase_name
from streampulse_core.streampulse_core import logger as app_logger

APP_NAME = "StreamPulse"
APP_VERSION = "1.0.0"
STARTUP_CHECK_DELAY_MS = 3000
CHECK_INTERVAL_CHOICES = (1, 3, 5, 10, 15, 30, 60)

PendingNotification = Tuple[str, str, NotificationPayload]


@dataclass
class AppCoordinator(QObject):
    store: FollowStore = field(default_factory=FollowStore)
    settings_manager: SettingsManager = field(default_factory=SettingsManager)
    scrape_search: Optional[ScrapeSearch] = None

    def __post_init__(self) -> None:
        super().__init__()
        self._logger = app_logger.get_logger()
        self._pending: Deque[PendingNotification] = deque()
        self._manual_shutdown_requested = False
        self._checking = False

        self._settings: AppSettings = self.settings_manager.read_settings()
        self.store.load()

        self._host = LiveCheckerHost(
            self.store,
            scrape_search=self.scrape_search,
            interval_minutes=self._settings.check_interval_minutes,
        )
        self._host.liveStatusChanged.connect(self._on_live_status_changed)
        self._host.allChecksCompleted.connect(self._on_all_checks_completed)
        self._host.checkingChanged.connect(self._on_checking_changed)
        self._host.notificationRequested.connect(self._on_notification_requested)

        self._popup = NotificationPopup()
        self._popup.watchRequested.connect(self._on_watch_requested)
        self._popup.dismissed.connect(self._show_next_notification)

        self._tray = QSystemTrayIcon(self)
        self._tray.setIcon(QApplication.style().standardIcon(QStyle.StandardPixmap.SP_MediaPlay))
        self._build_tray_menu()

    def _build_tray_menu(self) -> None:
        menu = QMenu()
        refresh_action = QAction("Refresh Now", menu)
        self._follow_menu = QMenu("Following", menu)

        self._interval_menu = QMenu("Check interval", menu)
        self._interval_group = QActionGroup(self._interval_menu)
        self._interval_actions: Dict[int, QAction] = {}
        for minutes in CHECK_INTERVAL_CHOICES:
            action = QAction(f"Every {minutes} min", self._interval_group)
            action.setCheckable(True)
            action.triggered.connect(lambda _checked=False, value=minutes: self._on_interval_selected(value))
            self._interval_menu.addAction(action)
            self._interval_actions[minutes] = action

        self._showcase_action = QAction("Showcase mode", menu)
        self._showcase_action.setCheckable(True)
        self._showcase_action.toggled.connect(self._on_showcase_toggled)
        exit_action = QAction("Exit", menu)

        menu.addAction(refresh_action)
        menu.addMenu(self._follow_menu)
        menu.addSeparator()
        menu.addMenu(self._interval_menu)
        menu.addAction(self._showcase_action)
        menu.addSeparator()
        menu.addAction(exit_action)
        self._tray.setContextMenu(menu)
        self._tray_menu = menu

        refresh_action.triggered.connect(self._manual_refresh)
        exit_action.triggered.connect(self.shutdown)
        self._sync_settings_actions()

    @property
    def settings(self) -> AppSettings:
        return self._settings

    def start(self) -> None:
        self._logger.info(
            "Starting {} v{} with {} followed streamers (interval {} min)",
            APP_NAME,
            APP_VERSION,
            len(self.store),
            self._settings.check_interval_minutes,
        )
        self._refresh_tray()
        self._tray.show()
        self._host.start()
        QTimer.singleShot(STARTUP_CHECK_DELAY_MS, self._host.check_immediately)

    def shutdown(self) -> None:
        self._logger.info("Shutting down application on user request.")
        self._manual_shutdown_requested = True
        self._host.shutdown()
        self._popup.hide()
        self._tray.hide()
        QApplication.instance().quit()

    @property
    def manual_shutdown_requested(self) -> bool:
        return self._manual_shutdown_requested

    def apply_settings(self, settings: AppSettings) -> None:
        """Persist new settings and push the ones with runtime effect to the checker and tray."""
        previous = self._settings
        self._settings = settings
        self.settings_manager.write_settings(settings)
        if previous.check_interval_minutes != settings.check_interval_minutes:
            self._host.set_interval_minutes(settings.check_interval_minutes)
        if previous.showcase_mode != settings.showcase_mode:
            self._refresh_tray()
        self._sync_settings_actions()

    def _sync_settings_actions(self) -> None:
        action = self._interval_actions.get(self._settings.check_interval_minutes)
        if action is not None:
            action.setChecked(True)
        else:
            checked = self._interval_group.checkedAction()
            if checked is not None:
                checked.setChecked(False)
        self._showcase_action.blockSignals(True)
        self._showcase_action.setChecked(self._settings.showcase_mode)
        self._showcase_action.blockSignals(False)

    def _on_interval_selected(self, minutes: int) -> None:
        if minutes == self._settings.check_interval_minutes:
            return
        self._logger.info("Check interval changed to {} minutes from tray menu.", minutes)
        self.apply_settings(replace(self._settings, check_interval_minutes=minutes))

    def _on_showcase_toggled(self, enabled: bool) -> None:
        self._logger.info("Showcase mode {}.", "enabled" if enabled else "disabled")
        self.apply_settings(replace(self._settings, showcase_mode=enabled))

    def _manual_refresh(self) -> None:
        self._logger.info("Manual refresh triggered from tray menu.")
        self._host.refresh()

    def _on_live_status_changed(self) -> None:
        self._refresh_tray()

    def _on_all_checks_completed(self) -> None:
        self._logger.info("Startup follow check completed")
        self._refresh_tray()

    def _on_checking_changed(self, checking: bool) -> None:
        self._checking = checking
        self._refresh_tray()

    def _on_notification_requested(self, title: str, body: str, payload: NotificationPayload) -> None:
        if self._settings.showcase_mode:
            entry = self.store.get(payload.platform, payload.streamer_id)
            if entry is not None:
                title = LIVE_NOTIFICATION_TITLE.format(name=showcase_name(entry.display_name, entry.platform))
        self._pending.append((title, body, payload))
        if not self._popup.isVisible():
            self._show_next_notification()

    def _show_next_notification(self) -> None:
        if not self._pending:
            return
        title, body, payload = self._pending.popleft()
        self._logger.debug("Presenting live notification for {}:{}", payload.platform.value, payload.streamer_id)
        self._popup.show_notification(title, body, payload)

    def _on_watch_requested(self, payload: NotificationPayload) -> None:
        if payload.action != VIEW_STREAM_ACTION:
            self._logger.warning("Ignoring notification action {}", payload.action)
            return
        self._open_channel(payload.url)

    def _open_channel(self, url: str) -> None:
        if not url:
            self._logger.error("Notification payload has no channel URL")
            return
        self._logger.info("Opening channel {}", url)
        if not QDesktopServices.openUrl(QUrl(url)):
            self._logger.error("Failed to open channel {}", url)

    def _refresh_tray(self) -> None:
        self._follow_menu.clear()
        follows = self.store.snapshot()
        for streamer in follows:
            action = QAction(streamer.menu_label(showcase=self._settings.showcase_mode), self._follow_menu)
            action.triggered.connect(lambda _checked=False, url=streamer.channel_url: self._open_channel(url))
            self._follow_menu.addAction(action)
        self._follow_menu.setEnabled(bool(follows))
        self._refresh_tooltip()

    def _refresh_tooltip(self) -> None:
        live_count = sum(1 for streamer in self.store.snapshot() if streamer.is_live)
        status = "checking..." if self._checking else f"{live_count} live / {len(self.store)} followed"
        self._tray.setToolTip(f"{APP_NAME} v{APP_VERSION} - {status}")
