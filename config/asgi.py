"""
ASGI config for LegisEye backend.

Handles both HTTP and WebSocket connections.
"""
import os

from channels.routing import ProtocolTypeRouter, URLRouter
from channels.security.websocket import AllowedHostsOriginValidator
from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

# Populate the app registry before importing anything that touches models.
django_asgi_app = get_asgi_application()

from apps.indexing.routing import websocket_urlpatterns  # noqa: E402
from apps.indexing.middleware import JWTAuthMiddleware  # noqa: E402

application = ProtocolTypeRouter({
    "http": django_asgi_app,

    # WebSocket connections go through JWT auth then to the events consumer
    "websocket": AllowedHostsOriginValidator(
        JWTAuthMiddleware(
            URLRouter(websocket_urlpatterns)
        )
    ),
})
