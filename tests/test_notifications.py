"""Tests for the notification sink."""

import pytest
from kombu.exceptions import OperationalError

from conftest import FailingNotifier, RecordingNotifier
from marketplace.services import notification_service
from marketplace.services.notification_service import (
    EventType,
    NotificationService,
    emit_safely,
    send_notification_task,
)


class FakeTask:
    def __init__(self, failures=0):
        self.failures = failures
        self.calls = []

    def delay(self, *args):
        self.calls.append(args)
        if len(self.calls) <= self.failures:
            raise OperationalError("broker unreachable")


class TestNotificationService:
    def test_enqueues_task(self, monkeypatch):
        task = FakeTask()
        monkeypatch.setattr(notification_service, "send_notification_task", task)

        NotificationService().emit(7, EventType.ORDER_CREATED, {"order_number": "PED-20261019-0001"})

        assert task.calls == [(7, "ORDER_CREATED", {"order_number": "PED-20261019-0001"})]

    def test_retries_broker_errors(self, monkeypatch):
        task = FakeTask(failures=2)
        monkeypatch.setattr(notification_service, "send_notification_task", task)

        NotificationService().emit(7, EventType.NEW_SALE, {})

        assert len(task.calls) == 3

    def test_gives_up_after_retries(self, monkeypatch):
        task = FakeTask(failures=10)
        monkeypatch.setattr(notification_service, "send_notification_task", task)

        with pytest.raises(OperationalError):
            NotificationService().emit(7, EventType.NEW_SALE, {})

    def test_task_body(self):
        result = send_notification_task(3, "LOW_STOCK", {"stock": 2})

        assert result == {"recipient_id": 3, "event_type": "LOW_STOCK", "status": "sent"}


class TestEmitSafely:
    def test_delivers(self):
        sink = RecordingNotifier()

        assert emit_safely(sink, 1, EventType.ORDER_CANCELLED, {"order_id": 5}) is True
        assert sink.events == [(1, "ORDER_CANCELLED", {"order_id": 5})]

    def test_swallows_failures(self, caplog):
        assert emit_safely(FailingNotifier(), 1, EventType.ORDER_CREATED, {}) is False
        assert "ORDER_CREATED for user 1 dropped" in caplog.text
