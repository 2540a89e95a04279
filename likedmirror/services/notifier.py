"""User-facing notifications.

Notifications are fire-and-forget: the sink is called synchronously, every
message is also logged, and a failing sink never reaches the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from likedmirror.adapters.library.protocols import NotificationSink

logger = logging.getLogger(__name__)


class Notifier:
    """Route short status messages to a notification sink.

    In debug mode only errors and loading messages are shown; otherwise
    success, warning and error messages are shown and loading ones are not.
    """

    def __init__(self, sink: NotificationSink | None = None, *, debug_mode: bool = False) -> None:
        self._sink = sink
        self.debug_mode = debug_mode

    def success(self, message: str) -> None:
        logger.info("notify_success", extra={"notification": message})
        if not self.debug_mode:
            self._show(message, is_error=False)

    def error(self, message: str) -> None:
        logger.error("notify_error", extra={"notification": message})
        self._show(message, is_error=True)

    def warn(self, message: str) -> None:
        logger.warning("notify_warn", extra={"notification": message})
        if not self.debug_mode:
            self._show(message, is_error=True)

    def loading(self, message: str) -> None:
        logger.debug("notify_loading", extra={"notification": message})
        if self.debug_mode:
            self._show(message, is_error=False)

    def _show(self, message: str, *, is_error: bool) -> None:
        if self._sink is None:
            return
        try:
            self._sink(message, is_error)
        except Exception:
            logger.exception("notification_sink_failed", extra={"notification": message})
