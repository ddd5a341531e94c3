"""
Tests for the translation client and endpoint.
"""
import json
from unittest.mock import patch

import httpx
import pytest

from apps.translation.client import TranslationError, translate_text


def provider_response(status=200, **kwargs):
    return httpx.Response(status, request=httpx.Request('POST', 'https://translate.test/translate'), **kwargs)


class TestTranslateText:

    def test_blank_text_skips_provider(self):
        with patch.object(httpx.Client, 'post') as mock_post:
            assert translate_text('   ', 'es') == '   '
        mock_post.assert_not_called()

    def test_same_language_skips_provider(self):
        with patch.object(httpx.Client, 'post') as mock_post:
            assert translate_text('Hello', 'EN', source='en') == 'Hello'
        mock_post.assert_not_called()

    def test_translates(self, settings):
        settings.TRANSLATION_API_KEY = 'k-123'
        with patch.object(httpx.Client, 'post', return_value=provider_response(json={'translatedText': 'Hola'})) as mock_post:
            assert translate_text('Hello', 'ES') == 'Hola'

        payload = mock_post.call_args.kwargs['json']
        assert payload == {'q': 'Hello', 'source': 'auto', 'target': 'es', 'format': 'text', 'api_key': 'k-123'}

    def test_provider_error(self):
        with patch.object(httpx.Client, 'post', return_value=provider_response(503, text='down')):
            with pytest.raises(TranslationError, match='503'):
                translate_text('Hello', 'es')

    def test_connection_error(self):
        with patch.object(httpx.Client, 'post', side_effect=httpx.ConnectError('refused')):
            with pytest.raises(TranslationError, match='connect'):
                translate_text('Hello', 'es')

    def test_missing_text_in_response(self):
        with patch.object(httpx.Client, 'post', return_value=provider_response(json={'error': 'x'})):
            with pytest.raises(TranslationError):
                translate_text('Hello', 'es')


@pytest.mark.django_db
class TestTranslateEndpoint:

    def post(self, client, auth, body):
        return client.post('/api/translate', data=json.dumps(body), content_type='application/json', **auth)

    @patch('apps.translation.views.translate_text', return_value='Bonjour')
    def test_success(self, mock_translate, client, auth):
        response = self.post(client, auth, {'text': 'Hello', 'target': 'fr', 'source': 'en'})

        assert response.status_code == 200
        assert response.json() == {'translatedText': 'Bonjour'}
        mock_translate.assert_called_once_with('Hello', 'fr', source='en')

    def test_missing_fields(self, client, auth):
        response = self.post(client, auth, {'text': 'Hello'})

        assert response.status_code == 400
        assert response.json()['error'] == 'Missing text or target language'

    @patch('apps.translation.views.translate_text', side_effect=TranslationError('boom'))
    def test_provider_failure(self, mock_translate, client, auth):
        response = self.post(client, auth, {'text': 'Hello', 'target': 'fr'})

        assert response.status_code == 500
        assert response.json()['error'] == 'Failed to translate'

    def test_requires_auth(self, client):
        assert self.post(client, {}, {'text': 'a', 'target': 'b'}).status_code == 401
