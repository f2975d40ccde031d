"""Background delivery of queued push notifications."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

log = logging.getLogger(__name__)

REFRESH_NOTIFICATIONS_QUEUE_INTERVAL = 60


class PushError(Exception):
    """The push service could not be reached or refused a notification."""


@dataclass(frozen=True)
class PendingNotification:
    """A queued notification: its id, the device to reach and a JSON payload."""

    notification_id: int
    device_token: bytes
    payload: str


class NotificationStore(Protocol):
    """The queue of notifications waiting to be pushed."""

    def pending_count(self) -> int: ...

    def pending(self) -> Iterable[PendingNotification]: ...

    def mark_rescheduled(self, notification_id: int) -> None: ...

    def mark_sent(self, notification_id: int) -> None: ...


class _Push(Protocol):
    def connect(self) -> None: ...

    def send(self, device_token: bytes, payload: str) -> None: ...

    def disconnect(self) -> None: ...


class Notificator:
    """Pushes pending notifications whenever triggered, or at the latest every interval."""

    def __init__(
        self,
        store: NotificationStore,
        push: _Push,
        refresh_interval: float = REFRESH_NOTIFICATIONS_QUEUE_INTERVAL,
    ) -> None:
        self.store = store
        self.push = push
        self.refresh_interval = refresh_interval
        self._condition = threading.Condition()
        self._triggered = False
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    def trigger_processing(self) -> None:
        """Wake the service thread to look at the queue now."""
        log.debug("[Notificator] Triggered")
        with self._condition:
            self._triggered = True
            self._condition.notify()

    def wait_for_trigger(self, timeout: float) -> bool:
        """Wait until triggered or ``timeout`` seconds pass.

        Returns at once with True if notifications are pending already;
        False means the wait timed out.
        """
        with self._condition:
            if self.pending_count() != 0:
                self._triggered = False
                return True
            self._condition.wait_for(lambda: self._triggered, timeout)
            triggered = self._triggered
            self._triggered = False
            return triggered

    def pending_count(self) -> int:
        """Number of notifications waiting to be sent."""
        return self.store.pending_count()

    def process_pending(self) -> None:
        """Send every pending notification and mark it in the store."""
        notifications = list(self.store.pending())
        if not notifications:
            return
        try:
            self.push.connect()
        except PushError as error:
            log.error("[Notificator] Cannot process pending notifications: %s", error)
            return
        for notification in notifications:
            log.info(
                "[Notificator] Fetched pending notification #%d", notification.notification_id
            )
            try:
                self.push.send(notification.device_token, notification.payload)
            except PushError:
                self.store.mark_rescheduled(notification.notification_id)
                log.info(
                    "[Notificator] Marked notification #%d as 'rescheduled'",
                    notification.notification_id,
                )
            self.store.mark_sent(notification.notification_id)
            log.info(
                "[Notificator] Marked notification #%d as 'sent'", notification.notification_id
            )
        self.push.disconnect()

    def start(self) -> None:
        """Start the service thread."""
        if self._thread is not None:
            raise RuntimeError("notificator already started")
        self._stopped.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the service thread and wait for it to finish."""
        self._stopped.set()
        self.trigger_processing()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _run(self) -> None:
        log.info("[Notificator] Service thread has been started")
        while not self._stopped.is_set():
            try:
                self.wait_for_trigger(self.refresh_interval)
                if self._stopped.is_set():
                    break
                self.process_pending()
            except Exception:
                log.exception("[Notificator] Cannot process pending notifications")
                self._stopped.wait(1.0)
        log.warning("[Notificator] Service thread is going to quit")