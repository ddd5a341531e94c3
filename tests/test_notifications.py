"""
Tests for notification creation and the notification bell endpoints.
"""
import json
from unittest.mock import patch

import pytest

from apps.notifications.models import Notification, NotificationType
from apps.notifications.services import notify, notify_many
from tests.conftest import make_user


def patch_json(client, auth, body):
    return client.patch('/api/notifications', data=json.dumps(body),
                        content_type='application/json', **auth)


@pytest.mark.django_db
class TestNotifyServices:

    @patch('apps.notifications.services.publish_notification')
    def test_notify_creates_and_pushes(self, mock_publish, user):
        notification = notify(
            user, NotificationType.SYSTEM, 'Welcome', 'Hello there',
            link='/dashboard', metadata={'source': 'test'},
        )

        assert notification.read is False
        assert notification.metadata == {'source': 'test'}
        mock_publish.assert_called_once()
        user_id, payload = mock_publish.call_args.args
        assert user_id == str(user.id)
        assert payload['title'] == 'Welcome'
        assert payload['link'] == '/dashboard'

    @patch('apps.notifications.services.publish_notification')
    def test_notify_many(self, mock_publish, user, other_user):
        notify_many([user, other_user], NotificationType.DOCUMENT_SHARED, 'Shared', 'A document was shared')

        assert Notification.objects.count() == 2
        assert mock_publish.call_count == 2
        assert {c.args[0] for c in mock_publish.call_args_list} == {str(user.id), str(other_user.id)}

    def test_notify_works_with_in_memory_channel_layer(self, user):
        notify(user, NotificationType.SYSTEM, 'Hi', 'Message')

        assert Notification.objects.filter(user=user).count() == 1


@pytest.mark.django_db
class TestNotificationsEndpoint:

    def test_list_with_unread_count(self, client, user, auth):
        first = notify(user, NotificationType.SYSTEM, 'One', 'm')
        notify(user, NotificationType.SYSTEM, 'Two', 'm')
        Notification.objects.filter(id=first.id).update(read=True)
        notify(make_user(email='x@example.com'), NotificationType.SYSTEM, 'Other', 'm')

        data = client.get('/api/notifications', **auth).json()

        assert [n['title'] for n in data['notifications']] == ['Two', 'One']
        assert data['unreadCount'] == 1

    def test_unread_only_and_limit(self, client, user, auth):
        for i in range(3):
            notify(user, NotificationType.SYSTEM, f'N{i}', 'm')

        data = client.get('/api/notifications?unreadOnly=true&limit=2', **auth).json()

        assert len(data['notifications']) == 2

    def test_mark_selected_as_read(self, client, user, auth):
        mine = notify(user, NotificationType.SYSTEM, 'Mine', 'm')
        theirs = notify(make_user(email='y@example.com'), NotificationType.SYSTEM, 'Theirs', 'm')

        response = patch_json(client, auth, {'notificationIds': [str(mine.id), str(theirs.id), 'bogus']})

        assert response.status_code == 200
        mine.refresh_from_db()
        theirs.refresh_from_db()
        assert mine.read is True
        assert mine.read_at is not None
        assert theirs.read is False

    def test_mark_all_as_read(self, client, user, auth):
        notify(user, NotificationType.SYSTEM, 'A', 'm')
        notify(user, NotificationType.SYSTEM, 'B', 'm')

        patch_json(client, auth, {'markAllAsRead': True})

        assert not Notification.objects.filter(user=user, read=False).exists()

    def test_patch_requires_ids(self, client, auth):
        assert patch_json(client, auth, {}).status_code == 400

    def test_delete_one(self, client, user, auth):
        notification = notify(user, NotificationType.SYSTEM, 'A', 'm')

        response = client.delete(f'/api/notifications?notificationId={notification.id}', **auth)

        assert response.status_code == 200
        assert not Notification.objects.filter(id=notification.id).exists()

    def test_delete_all_read_keeps_unread(self, client, user, auth):
        read = notify(user, NotificationType.SYSTEM, 'Read', 'm')
        unread = notify(user, NotificationType.SYSTEM, 'Unread', 'm')
        Notification.objects.filter(id=read.id).update(read=True)

        client.delete('/api/notifications?deleteAll=true', **auth)

        assert list(Notification.objects.filter(user=user)) == [unread]

    def test_delete_someone_elses(self, client, auth):
        notification = notify(make_user(email='z@example.com'), NotificationType.SYSTEM, 'A', 'm')

        response = client.delete(f'/api/notifications?notificationId={notification.id}', **auth)

        assert response.status_code == 404

    def test_requires_auth(self, client):
        assert client.get('/api/notifications').status_code == 401
