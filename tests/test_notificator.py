import threading
import time

import pytest

from primus.notificator import (
    REFRESH_NOTIFICATIONS_QUEUE_INTERVAL,
    Notificator,
    PendingNotification,
    PushError,
)


class FakeStore:
    def __init__(self, notifications=()):
        self.queue = list(notifications)
        self.sent = []
        self.rescheduled = []
        self.lock = threading.Lock()

    def pending_count(self):
        with self.lock:
            return len(self.queue)

    def pending(self):
        with self.lock:
            return list(self.queue)

    def mark_rescheduled(self, notification_id):
        self.rescheduled.append(notification_id)

    def mark_sent(self, notification_id):
        with self.lock:
            self.sent.append(notification_id)
            self.queue = [n for n in self.queue if n.notification_id != notification_id]

    def add(self, notification):
        with self.lock:
            self.queue.append(notification)


class FakePush:
    def __init__(self, fail_tokens=(), fail_connect=False):
        self.fail_tokens = set(fail_tokens)
        self.fail_connect = fail_connect
        self.events = []
        self.delivered = threading.Event()

    def connect(self):
        if self.fail_connect:
            raise PushError("unreachable")
        self.events.append("connect")

    def send(self, device_token, payload):
        if device_token in self.fail_tokens:
            raise PushError("refused")
        self.events.append(("send", device_token, payload))
        self.delivered.set()

    def disconnect(self):
        self.events.append("disconnect")


def note(nid, token=b"\x01\x02"):
    return PendingNotification(nid, token, '{"aps": {}}')


def test_default_interval():
    assert REFRESH_NOTIFICATIONS_QUEUE_INTERVAL == 60
    assert Notificator(FakeStore(), FakePush()).refresh_interval == 60


def test_pending_count_comes_from_store():
    store = FakeStore([note(1), note(2)])
    assert Notificator(store, FakePush()).pending_count() == 2


def test_process_sends_and_marks_sent():
    store = FakeStore([note(1, b"a"), note(2, b"b")])
    push = FakePush()
    Notificator(store, push).process_pending()
    assert push.events == [
        "connect",
        ("send", b"a", '{"aps": {}}'),
        ("send", b"b", '{"aps": {}}'),
        "disconnect",
    ]
    assert store.sent == [1, 2]
    assert store.pending_count() == 0


def test_failed_send_is_rescheduled_and_marked_sent():
    store = FakeStore([note(1, b"bad"), note(2, b"good")])
    push = FakePush(fail_tokens={b"bad"})
    Notificator(store, push).process_pending()
    assert store.rescheduled == [1]
    assert store.sent == [1, 2]


def test_nothing_pending_does_not_connect():
    push = FakePush()
    Notificator(FakeStore(), push).process_pending()
    assert push.events == []


def test_connect_failure_leaves_queue():
    store = FakeStore([note(1)])
    Notificator(store, FakePush(fail_connect=True)).process_pending()
    assert store.sent == []
    assert store.pending_count() == 1


def test_wait_returns_at_once_when_pending():
    notificator = Notificator(FakeStore([note(1)]), FakePush())
    started = time.monotonic()
    assert notificator.wait_for_trigger(5.0) is True
    assert time.monotonic() - started < 1.0


def test_wait_times_out_when_idle():
    notificator = Notificator(FakeStore(), FakePush())
    assert notificator.wait_for_trigger(0.01) is False


def test_trigger_wakes_waiter():
    notificator = Notificator(FakeStore(), FakePush())
    timer = threading.Timer(0.05, notificator.trigger_processing)
    timer.start()
    try:
        assert notificator.wait_for_trigger(5.0) is True
    finally:
        timer.cancel()


def test_trigger_before_wait_is_not_lost():
    notificator = Notificator(FakeStore(), FakePush())
    notificator.trigger_processing()
    assert notificator.wait_for_trigger(0.01) is True
    assert notificator.wait_for_trigger(0.01) is False


def test_service_thread_delivers_on_trigger():
    store = FakeStore()
    push = FakePush()
    notificator = Notificator(store, push, refresh_interval=30)
    notificator.start()
    try:
        store.add(note(5, b"dev"))
        notificator.trigger_processing()
        assert push.delivered.wait(5.0)
    finally:
        notificator.stop()
    deadline = time.monotonic() + 5
    while store.sent != [5] and time.monotonic() < deadline:
        time.sleep(0.01)
    assert store.sent == [5]


def test_start_twice_raises():
    notificator = Notificator(FakeStore(), FakePush(), refresh_interval=30)
    notificator.start()
    try:
        with pytest.raises(RuntimeError):
            notificator.start()
    finally:
        notificator.stop()