"""
Translation URL routes (mounted under /api/).
"""
from django.urls import path

from . import views

urlpatterns = [
    path('translate', views.translate, name='translate'),
]
