"""
Authentication and account URL routes.
"""
from django.urls import path

from . import views

urlpatterns = [
    path('auth/register', views.register, name='register'),
    path('auth/login', views.login, name='login'),
    path('auth/google', views.google_login, name='google-login'),
    path('auth/me', views.me, name='me'),
    path('auth/verify-email', views.verify_email, name='verify-email'),
    path('auth/reset-password', views.reset_password, name='reset-password'),
    path('user', views.user_settings, name='user-settings'),
    path('user/profile', views.profile, name='user-profile'),
    path('user/status', views.user_status, name='user-status'),
]
