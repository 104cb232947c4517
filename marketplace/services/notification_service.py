# marketplace/services/notification_service.py
from enum import Enum
from typing import Any, Protocol

from marketplace.celery_worker import celery_app
from marketplace.utils.logging import get_logger
from marketplace.utils.retry import broker_retry

logger = get_logger(__name__)


class EventType(str, Enum):
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    NEW_SALE = "NEW_SALE"
    LOW_STOCK = "LOW_STOCK"


class NotificationSink(Protocol):
    def emit(self, recipient_id: int, event_type: EventType, payload: dict[str, Any]) -> None: ...


class NotificationService:
    """
    Serwis do wysyłania powiadomień.
    Używa Celery do asynchronicznego przetwarzania.
    """

    @broker_retry()
    def emit(self, recipient_id: int, event_type: EventType, payload: dict[str, Any]) -> None:
        send_notification_task.delay(recipient_id, EventType(event_type).value, payload)


def emit_safely(sink: NotificationSink, recipient_id: int, event_type: EventType, payload: dict[str, Any]) -> bool:
    """
    Powiadomienia sa best-effort: blad jest logowany i polykany,
    operacja biznesowa (juz zacommitowana) sie nie cofa.
    """
    try:
        sink.emit(recipient_id, event_type, payload)
        return True
    except Exception as e:
        logger.warning(f"Notification {EventType(event_type).value} for user {recipient_id} dropped: {e}")
        return False


@celery_app.task(name="marketplace.services.notification_service.send_notification_task")
def send_notification_task(recipient_id: int, event_type: str, payload: dict):
    """
    Celery task - w prawdziwym systemie wysłałby email/SMS/push.
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] User {recipient_id}: {event_type} {payload}")

    return {"recipient_id": recipient_id, "event_type": event_type, "status": "sent"}
