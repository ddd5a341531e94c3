"""
Tests for the /ws/events socket: token auth, ping and event delivery.

Each scenario runs inside async_to_sync so thread-sensitive database
calls made by the middleware stay on the test thread.
"""
import pytest
from asgiref.sync import async_to_sync, sync_to_async
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator

from apps.authn.jwt_validator import issue_token
from apps.indexing.consumers import UNAUTHORIZED_CLOSE_CODE
from apps.indexing.events import user_group
from apps.indexing.middleware import JWTAuthMiddleware
from apps.indexing.publisher import publish_progress
from apps.indexing.routing import websocket_urlpatterns

application = JWTAuthMiddleware(URLRouter(websocket_urlpatterns))


def events_socket(token=None) -> WebsocketCommunicator:
    path = '/ws/events' if token is None else f'/ws/events?token={token}'
    return WebsocketCommunicator(application, path)


async def open_events_socket(user) -> WebsocketCommunicator:
    token, _ = issue_token(user)
    communicator = events_socket(token)
    connected, _ = await communicator.connect()
    assert connected
    greeting = await communicator.receive_json_from()
    assert greeting == {'type': 'connected', 'userId': str(user.id)}
    return communicator


# ============================================================================
# Authentication
# ============================================================================

@pytest.mark.django_db(transaction=True)
class TestSocketAuthentication:

    def test_missing_token_is_closed_with_4001(self):
        async def scenario():
            return await events_socket().connect()

        assert async_to_sync(scenario)() == (False, UNAUTHORIZED_CLOSE_CODE)

    def test_invalid_token_is_closed_with_4001(self):
        async def scenario():
            return await events_socket('not-a-jwt').connect()

        assert async_to_sync(scenario)() == (False, 4001)

    def test_token_of_deleted_user_is_closed(self, user):
        token, _ = issue_token(user)
        user.delete()

        async def scenario():
            return await events_socket(token).connect()

        assert async_to_sync(scenario)() == (False, 4001)

    def test_valid_token_is_accepted(self, user):
        async def scenario():
            communicator = await open_events_socket(user)
            await communicator.disconnect()

        async_to_sync(scenario)()


# ============================================================================
# Messages
# ============================================================================

@pytest.mark.django_db(transaction=True)
class TestSocketMessages:

    def test_ping_gets_pong(self, user):
        async def scenario():
            communicator = await open_events_socket(user)
            await communicator.send_json_to({'type': 'ping'})
            reply = await communicator.receive_json_from()
            await communicator.disconnect()
            return reply

        assert async_to_sync(scenario)() == {'type': 'pong'}

    def test_other_messages_are_ignored(self, user):
        async def scenario():
            communicator = await open_events_socket(user)
            await communicator.send_json_to({'type': 'subscribe'})
            silent = await communicator.receive_nothing()
            await communicator.disconnect()
            return silent

        assert async_to_sync(scenario)() is True

    def test_group_notification_is_forwarded(self, user):
        async def scenario():
            communicator = await open_events_socket(user)
            await get_channel_layer().group_send(
                user_group(str(user.id)),
                {'type': 'notification', 'data': {'id': 'n1', 'title': 'Team invitation'}},
            )
            message = await communicator.receive_json_from()
            await communicator.disconnect()
            return message

        assert async_to_sync(scenario)() == {
            'type': 'notification',
            'data': {'id': 'n1', 'title': 'Team invitation'},
        }

    def test_job_progress_reaches_only_the_owner(self, user, other_user):
        async def scenario():
            owner_socket = await open_events_socket(user)
            other_socket = await open_events_socket(other_user)

            await sync_to_async(publish_progress)(
                'doc-1', 'job-1', str(user.id), 'EMBED', 70, 'Generating embeddings...'
            )

            message = await owner_socket.receive_json_from()
            other_silent = await other_socket.receive_nothing()
            await owner_socket.disconnect()
            await other_socket.disconnect()
            return message, other_silent

        message, other_silent = async_to_sync(scenario)()

        assert message['type'] == 'upload_progress'
        assert message['data'] == {
            'type': 'upload_progress',
            'documentId': 'doc-1',
            'jobId': 'job-1',
            'userId': str(user.id),
            'stage': 'EMBED',
            'progress': 70,
            'message': 'Generating embeddings...',
        }
        assert other_silent is True
