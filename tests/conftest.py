"""
Shared fixtures.

External services are never reached from tests: the channel layer is
in-memory, email goes to the locmem outbox, rate limiting is disabled and
files are written under a per-test temporary directory.
"""
import pytest
from django.test import Client

from apps.authn.jwt_validator import issue_token
from apps.authn.models import User


@pytest.fixture(autouse=True)
def test_settings(settings, tmp_path, monkeypatch):
    settings.CHANNEL_LAYERS = {'default': {'BACKEND': 'channels.layers.InMemoryChannelLayer'}}
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    settings.UPLOAD_ROOT = tmp_path / 'uploads'
    settings.EXTRACTED_ROOT = tmp_path / 'extracted'
    settings.JWT_SECRET = 'test-secret-key-with-enough-length-for-hs256'
    settings.GEMINI_API_KEY = 'test-gemini-key'
    settings.PINECONE_API_KEY = 'test-pinecone-key'
    monkeypatch.setenv('DISABLE_RATE_LIMITING', 'true')
    monkeypatch.setattr('apps.docs.storage._storage', None)
    monkeypatch.setattr('apps.rag.vectorstore._store', None)
    monkeypatch.setattr('apps.rag.llm_client._client_instance', None)
    return settings


def make_user(email='owner@example.com', first_name='Olivia', password='s3cret-pass', **extra):
    return User.objects.create_user(email=email, password=password, first_name=first_name, **extra)


def auth_header(user) -> dict:
    token, _ = issue_token(user)
    return {'HTTP_AUTHORIZATION': f'Bearer {token}'}


@pytest.fixture
def user(db):
    return make_user()


@pytest.fixture
def other_user(db):
    return make_user(email='member@example.com', first_name='Marcus')


@pytest.fixture
def client():
    return Client()


@pytest.fixture
def auth(user):
    return auth_header(user)
