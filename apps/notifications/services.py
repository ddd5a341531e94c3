"""
Creating notifications and pushing them to connected clients.
"""
import logging
from typing import Iterable, List, Optional

from apps.indexing.publisher import publish_notification
from .models import Notification

logger = logging.getLogger(__name__)


def notify(
    user,
    type: str,
    title: str,
    message: str,
    link: Optional[str] = None,
    action_label: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> Notification:
    """Create a notification for one user and push it over WebSocket."""
    notification = Notification.objects.create(
        user=user,
        type=type,
        title=title,
        message=message,
        link=link,
        action_label=action_label,
        metadata=metadata or {},
    )
    publish_notification(str(user.id), notification.to_dict())
    return notification


def notify_many(
    users: Iterable,
    type: str,
    title: str,
    message: str,
    link: Optional[str] = None,
    action_label: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> List[Notification]:
    """Create the same notification for several users."""
    users = list(users)
    notifications = Notification.objects.bulk_create([
        Notification(
            user=user,
            type=type,
            title=title,
            message=message,
            link=link,
            action_label=action_label,
            metadata=metadata or {},
        )
        for user in users
    ])
    for user, notification in zip(users, notifications):
        publish_notification(str(user.id), notification.to_dict())
    logger.debug(f"Created {len(notifications)} {type} notifications")
    return notifications
