"""
WebSocket consumer for /ws/events.

Streams a user's document processing progress and new notifications.
"""
import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from apps.indexing.events import user_group

logger = logging.getLogger(__name__)

UNAUTHORIZED_CLOSE_CODE = 4001


class EventsConsumer(AsyncJsonWebsocketConsumer):
    """
    JWTAuthMiddleware puts the account in scope['user']. Anonymous sockets
    are closed with 4001 before being accepted; authenticated ones join
    the user's group and receive everything published to it.
    """
    group_name = None

    async def connect(self):
        user = self.scope.get('user')
        if not user:
            logger.warning("Closing events socket without a valid token")
            await self.close(code=UNAUTHORIZED_CLOSE_CODE)
            return

        self.user_id = user['id']
        self.group_name = user_group(self.user_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send_json({'type': 'connected', 'userId': self.user_id})
        logger.info(f"Events socket opened for user {self.user_id}")

    async def disconnect(self, close_code):
        if self.group_name:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
            logger.info(f"Events socket closed for user {self.user_id} (code={close_code})")

    async def receive_json(self, content, **kwargs):
        if isinstance(content, dict) and content.get('type') == 'ping':
            await self.send_json({'type': 'pong'})

    async def relay(self, event):
        await self.send_json({'type': event['type'], 'data': event['data']})

    upload_progress = relay
    upload_complete = relay
    upload_failed = relay
    notification = relay
