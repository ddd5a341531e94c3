"""
URL configuration for LegisEye backend.
"""
from django.urls import path, include

from apps.core.health import healthz, readyz
from apps.docs.urls import upload_urlpatterns


urlpatterns = [
    # Health check endpoints (no auth)
    path('healthz', healthz, name='healthz'),
    path('readyz', readyz, name='readyz'),

    # Upload pipeline and chat at the root
    path('', include(upload_urlpatterns)),
    path('', include('apps.rag.urls')),

    # API routes
    path('api/', include('apps.authn.urls')),
    path('api/', include('apps.docs.urls')),
    path('api/', include('apps.notifications.urls')),
    path('api/', include('apps.translation.urls')),
    path('api/', include('apps.teams.urls')),
    path('api/', include('apps.rag.urls')),
]
