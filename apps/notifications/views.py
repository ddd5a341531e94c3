"""
Notification bell endpoints.

- GET    /api/notifications  - list (newest first) with unread count
- PATCH  /api/notifications  - mark some or all as read
- DELETE /api/notifications  - delete one, or every read notification
"""
import logging
import uuid

from django.http import JsonResponse
from django.utils import timezone
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from apps.authn.middleware import auth_required
from apps.core.http import read_json, invalid_json, error_response, parse_bool
from .models import Notification

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _valid_ids(values) -> list:
    ids = []
    for value in values:
        try:
            ids.append(uuid.UUID(str(value)))
        except ValueError:
            continue
    return ids


@method_decorator(csrf_exempt, name='dispatch')
@method_decorator(auth_required, name='dispatch')
class NotificationsView(View):

    def get(self, request):
        user = request.auth_user
        unread_only = parse_bool(request.GET.get('unreadOnly'))
        try:
            limit = int(request.GET.get('limit', DEFAULT_LIMIT))
        except ValueError:
            return error_response('limit must be an integer')
        limit = max(1, min(limit, MAX_LIMIT))

        queryset = Notification.objects.filter(user=user)
        if unread_only:
            queryset = queryset.filter(read=False)

        notifications = list(queryset.order_by('-created_at')[:limit])
        unread_count = Notification.objects.filter(user=user, read=False).count()

        return JsonResponse({
            'notifications': [n.to_dict() for n in notifications],
            'unreadCount': unread_count,
        })

    def patch(self, request):
        body = read_json(request)
        if body is None:
            return invalid_json()

        user = request.auth_user
        now = timezone.now()

        if parse_bool(body.get('markAllAsRead')):
            updated = Notification.objects.filter(user=user, read=False).update(read=True, read_at=now)
            logger.debug(f"Marked {updated} notifications read for {user.id}")
            return JsonResponse({'message': 'All notifications marked as read'})

        notification_ids = body.get('notificationIds')
        if not isinstance(notification_ids, list):
            return error_response('notificationIds array is required')

        Notification.objects.filter(
            id__in=_valid_ids(notification_ids),
            user=user,  # only the caller's own notifications
        ).update(read=True, read_at=now)

        return JsonResponse({'message': 'Notifications marked as read'})

    def delete(self, request):
        user = request.auth_user

        if parse_bool(request.GET.get('deleteAll')):
            Notification.objects.filter(user=user, read=True).delete()
            return JsonResponse({'message': 'All read notifications deleted'})

        notification_id = request.GET.get('notificationId')
        if not notification_id:
            return error_response('notificationId or deleteAll is required')

        ids = _valid_ids([notification_id])
        notification = Notification.objects.filter(id__in=ids, user=user).first()
        if notification is None:
            return error_response('Notification not found', 404)

        notification.delete()
        return JsonResponse({'message': 'Notification deleted'})
