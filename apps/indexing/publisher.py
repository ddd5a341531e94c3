"""
Pushes processing progress and notifications to a user's WebSocket clients.

Publishing is best effort: a missing or failing channel layer is logged
and never fails the job or request that produced the event.
"""
import logging
from typing import Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from apps.indexing.events import UploadProgressEvent, EventType, user_group

logger = logging.getLogger(__name__)


def publish_progress(
    document_id: str,
    job_id: str,
    user_id: str,
    stage: str,
    progress: int,
    message: Optional[str] = None
) -> None:
    event = UploadProgressEvent.progress(document_id, job_id, user_id, stage, progress, message)
    _send(user_id, event.type, event.to_dict())


def publish_complete(document_id: str, job_id: str, user_id: str) -> None:
    event = UploadProgressEvent.complete(document_id, job_id, user_id)
    _send(user_id, event.type, event.to_dict())


def publish_failed(document_id: str, job_id: str, user_id: str, error_message: str) -> None:
    event = UploadProgressEvent.failed(document_id, job_id, user_id, error_message)
    _send(user_id, event.type, event.to_dict())


def publish_notification(user_id: str, notification: dict) -> None:
    _send(user_id, EventType.NOTIFICATION.value, notification)


def _send(user_id: str, event_type: str, data: dict) -> None:
    # event_type doubles as the consumer handler name
    layer = get_channel_layer()
    if layer is None:
        logger.warning(f"No channel layer configured, dropping {event_type} for user {user_id}")
        return
    try:
        async_to_sync(layer.group_send)(user_group(user_id), {'type': event_type, 'data': data})
    except Exception as e:
        logger.warning(f"Failed to publish {event_type} to user {user_id}: {e}")
