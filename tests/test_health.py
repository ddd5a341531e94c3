"""
Tests for the liveness and readiness checks.
"""
from unittest.mock import patch

import pytest


def test_healthz(client):
    response = client.get('/healthz')

    assert response.status_code == 200
    assert response.json()['status'] == 'healthy'


@pytest.mark.django_db
class TestReadyz:

    @patch('apps.core.health.check_pinecone', return_value='ok')
    @patch('apps.core.health.check_gemini', return_value='degraded: status 500')
    @patch('apps.core.health.check_redis', return_value=('ok', True))
    def test_ready_when_critical_checks_pass(self, mock_redis, mock_gemini, mock_pinecone, client):
        response = client.get('/readyz')

        assert response.status_code == 200
        data = response.json()
        assert data['status'] == 'ready'
        assert data['checks'] == {
            'database': 'ok',
            'redis': 'ok',
            'gemini': 'degraded: status 500',
            'pinecone': 'ok',
        }

    @patch('apps.core.health.check_pinecone', return_value='not_configured')
    @patch('apps.core.health.check_gemini', return_value='ok')
    @patch('apps.core.health.check_redis', return_value=('error: refused', False))
    def test_not_ready_without_redis(self, mock_redis, mock_gemini, mock_pinecone, client):
        response = client.get('/readyz')

        assert response.status_code == 503
        assert response.json()['status'] == 'not_ready'
