"""
Go-live notification card presented in the bottom-right corner of the screen.
"""

from __future__ import annotations

from PySide6.QtCore import QPoint, QSize, Qt, QTimer, Signal
from PySide6.QtGui import QColor, QMouseEvent
from PySide6.QtWidgets import (
    QApplication,
    QGraphicsDropShadowEffect,
    QHBoxLayout,
    QLabel,
    QSizePolicy,
    QStyle,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from shared.followed_streamer import NotificationPayload

DISPLAY_DURATION_MS = 8000


class NotificationPopup(QWidget):
    watchRequested = Signal(object)
    dismissed = Signal()

    def __init__(self, parent: QWidget | None = None) -> None:
        flags = Qt.WindowType.Tool | Qt.WindowType.FramelessWindowHint | Qt.WindowType.WindowStaysOnTopHint
        super().__init__(parent)
        self.setWindowFlags(flags)
        self.setObjectName("NotificationPopup")
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground, True)
        self.setWindowOpacity(0.92)

        self._container = QWidget(self)
        self._container.setObjectName("PopupCard")
        shadow = QGraphicsDropShadowEffect(self._container)
        shadow.setBlurRadius(24)
        shadow.setColor(QColor(0, 0, 0, 140))
        shadow.setOffset(0, 10)
        self._container.setGraphicsEffect(shadow)

        self._payload: NotificationPayload | None = None

        self._hide_timer = QTimer(self)
        self._hide_timer.setSingleShot(True)
        self._hide_timer.setInterval(DISPLAY_DURATION_MS)
        self._hide_timer.timeout.connect(self._dismiss)  # type: ignore[arg-type]

        self._icon_label = QLabel()
        self._icon_label.setFixedSize(40, 40)
        self._icon_label.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)
        icon = self.style().standardIcon(QStyle.StandardPixmap.SP_MediaPlay)
        self._icon_label.setPixmap(icon.pixmap(40, 40))

        self._title_label = QLabel()
        self._title_label.setObjectName("NotificationTitle")
        self._title_label.setStyleSheet("font-weight: bold; font-size: 14px;")

        self._message_label = QLabel()
        self._message_label.setWordWrap(True)
        self._message_label.setObjectName("NotificationMessage")
        self._message_label.setMaximumWidth(320)

        actions_row = QWidget()
        actions_layout = QHBoxLayout(actions_row)
        actions_layout.setContentsMargins(0, 6, 0, 0)
        actions_layout.setSpacing(10)
        actions_layout.addStretch()
        self._watch_button = self._create_action_button(QStyle.StandardPixmap.SP_MediaPlay, "Watch")
        self._dismiss_button = self._create_action_button(QStyle.StandardPixmap.SP_DialogCloseButton, "Dismiss")
        actions_layout.addWidget(self._watch_button)
        actions_layout.addWidget(self._dismiss_button)

        text_layout = QVBoxLayout()
        text_layout.setSpacing(4)
        text_layout.addWidget(self._title_label)
        text_layout.addWidget(self._message_label)
        text_layout.addWidget(actions_row)

        base_layout = QHBoxLayout(self)
        base_layout.setContentsMargins(0, 0, 0, 0)
        base_layout.addWidget(self._container)

        layout = QHBoxLayout(self._container)
        layout.addWidget(self._icon_label)
        layout.addLayout(text_layout)
        layout.setContentsMargins(12, 10, 12, 12)
        layout.setSpacing(10)
        self.setMinimumWidth(320)
        self.setMaximumWidth(420)

        self.setStyleSheet(
            """
            QWidget#PopupCard {
                background-color: rgba(24, 24, 28, 0.85);
                color: white;
                border-radius: 12px;
                border: 1px solid rgba(255, 68, 68, 0.45);
            }
            QWidget#PopupCard QLabel#NotificationTitle {
                color: white;
            }
            QWidget#PopupCard QLabel#NotificationMessage {
                color: rgba(255, 255, 255, 0.80);
            }
            """
        )

        self._watch_button.clicked.connect(self._watch)  # type: ignore[arg-type]
        self._dismiss_button.clicked.connect(self._dismiss)  # type: ignore[arg-type]

    def _create_action_button(self, standard_icon: QStyle.StandardPixmap, tooltip: str) -> QToolButton:
        button = QToolButton()
        button.setCursor(Qt.CursorShape.PointingHandCursor)
        button.setToolTip(tooltip)
        button.setIconSize(QSize(22, 22))
        button.setFixedSize(38, 38)
        button.setIcon(self.style().standardIcon(standard_icon))
        button.setStyleSheet(
            """
            QToolButton {
                background-color: rgba(255, 255, 255, 0.12);
                border-radius: 18px;
            }
            QToolButton:hover {
                background-color: rgba(255, 255, 255, 0.22);
            }
            """
        )
        return button

    @property
    def payload(self) -> NotificationPayload | None:
        return self._payload

    def show_notification(self, title: str, body: str, payload: NotificationPayload) -> None:
        """Populate the card and display it for a few seconds."""
        self._payload = payload
        self._title_label.setText(title)
        self._message_label.setText(body)
        self.adjustSize()
        self._position_bottom_right()
        self.show()
        self._hide_timer.start()

    def _watch(self) -> None:
        payload = self._payload
        self._hide_timer.stop()
        self.hide()
        if payload is not None:
            self.watchRequested.emit(payload)
        self.dismissed.emit()

    def _dismiss(self) -> None:
        self._hide_timer.stop()
        self.hide()
        self.dismissed.emit()

    def _position_bottom_right(self) -> None:
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geometry = screen.availableGeometry()
        x = geometry.right() - self.width() - 20
        y = geometry.bottom() - self.height() - 20
        self.move(QPoint(x, y))

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        super().mousePressEvent(event)
        if event.button() == Qt.MouseButton.LeftButton:
            self._watch()
