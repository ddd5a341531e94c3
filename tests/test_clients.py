"""
Tests for the Gemini, OpenAI-compatible, embedding and Pinecone clients.

No network calls are made: transports and SDK objects are patched.
"""
from unittest.mock import MagicMock, patch

import httpx
import pytest
import requests

from apps.indexing.embedder import EmbeddingError, embed_batch, generate_embeddings
from apps.rag.embeddings import QueryValidationError, embed_query, normalize_query
from apps.rag.llm_client import (
    GeminiClient,
    LLMError,
    LLMMessage,
    OpenAICompatibleClient,
    get_llm_client,
)
from apps.rag.vectorstore import PineconeVectorStore, VectorStoreError, vector_id


def http_response(status=200, json_body=None, text=None):
    response = MagicMock()
    response.status_code = status
    response.json.return_value = json_body or {}
    response.text = text or ''
    return response


# ============================================================================
# LLM clients
# ============================================================================

class TestGeminiClient:

    def test_builds_request_with_system_instruction(self):
        client = GeminiClient()
        reply = {
            'candidates': [{'content': {'parts': [{'text': '{"summary": '}, {'text': '"ok"}'}]}}],
            'usageMetadata': {'promptTokenCount': 10, 'candidatesTokenCount': 4, 'totalTokenCount': 14},
        }
        with patch.object(GeminiClient, '_post', return_value=reply) as mock_post:
            response = client.chat(
                [
                    LLMMessage(role='system', content='Be precise'),
                    LLMMessage(role='user', content='Hi'),
                    LLMMessage(role='assistant', content='Hello'),
                ],
                json_output=True,
            )

        body = mock_post.call_args.args[2]
        assert body['systemInstruction'] == {'parts': [{'text': 'Be precise'}]}
        assert [c['role'] for c in body['contents']] == ['user', 'model']
        assert body['generationConfig']['responseMimeType'] == 'application/json'
        assert response.content == '{"summary": "ok"}'
        assert response.total_tokens == 14

    def test_blocked_prompt(self):
        with patch.object(GeminiClient, '_post', return_value={'promptFeedback': {'blockReason': 'SAFETY'}}):
            with pytest.raises(LLMError, match='SAFETY'):
                GeminiClient().chat([LLMMessage(role='user', content='x')])

    def test_missing_key(self, settings):
        settings.GEMINI_API_KEY = ''

        with pytest.raises(LLMError):
            GeminiClient()


def gemini_replying(handler):
    """Patch httpx so GeminiClient requests are answered by handler."""
    transport = httpx.MockTransport(handler)
    real_client = httpx.Client
    return patch('apps.rag.llm_client.httpx.Client',
                 side_effect=lambda **kwargs: real_client(transport=transport, **kwargs))


class TestLLMTransport:

    def chat(self):
        return GeminiClient().chat([LLMMessage(role='user', content='Hi')])

    def test_error_message_from_object(self):
        body = {'error': {'code': 400, 'message': 'API key not valid'}}
        with gemini_replying(lambda request: httpx.Response(400, json=body)):
            with pytest.raises(LLMError, match='API key not valid'):
                self.chat()

    def test_error_message_as_string(self):
        with gemini_replying(lambda request: httpx.Response(429, json={'error': 'quota exhausted'})):
            with pytest.raises(LLMError, match='429: quota exhausted'):
                self.chat()

    def test_error_body_not_json(self):
        with gemini_replying(lambda request: httpx.Response(502, text='<html>Bad gateway</html>')):
            with pytest.raises(LLMError, match='502'):
                self.chat()

    def test_success_body_not_json(self):
        with gemini_replying(lambda request: httpx.Response(200, text='<html>captive portal</html>')):
            with pytest.raises(LLMError, match='invalid JSON'):
                self.chat()

    def test_success_body_not_an_object(self):
        with gemini_replying(lambda request: httpx.Response(200, json=['unexpected'])):
            with pytest.raises(LLMError, match='unexpected payload'):
                self.chat()

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout('slow', request=request)

        with gemini_replying(handler):
            with pytest.raises(LLMError, match='timed out'):
                self.chat()


class TestLLMClientSelection:

    def test_default_is_gemini_and_cached(self, settings):
        settings.LLM_PROVIDER = 'gemini'

        client = get_llm_client()

        assert isinstance(client, GeminiClient)
        assert get_llm_client() is client

    def test_openai_provider(self, settings):
        settings.LLM_PROVIDER = 'openai'
        settings.OPENAI_API_KEY = 'sk-test'

        client = get_llm_client()

        assert isinstance(client, OpenAICompatibleClient)
        with patch.object(OpenAICompatibleClient, '_post', return_value={'choices': []}):
            with pytest.raises(LLMError, match='No choices'):
                client.chat([LLMMessage(role='user', content='x')])


# ============================================================================
# Embeddings
# ============================================================================

class TestEmbedBatch:

    @patch('apps.indexing.embedder.requests.post')
    def test_returns_vectors_in_order(self, mock_post):
        mock_post.return_value = http_response(json_body={'embeddings': [{'values': [1.0]}, {'values': [2.0]}]})

        assert embed_batch(['a', 'b']) == [[1.0], [2.0]]

        body = mock_post.call_args.kwargs['json']
        assert [r['taskType'] for r in body['requests']] == ['RETRIEVAL_DOCUMENT'] * 2

    @patch('apps.indexing.embedder.requests.post')
    def test_error_status(self, mock_post):
        mock_post.return_value = http_response(status=503, text='overloaded')

        with pytest.raises(EmbeddingError, match='503'):
            embed_batch(['a'])

    @patch('apps.indexing.embedder.requests.post', side_effect=requests.exceptions.Timeout())
    def test_timeout(self, mock_post):
        with pytest.raises(EmbeddingError, match='timed out'):
            embed_batch(['a'])

    def test_empty_text(self):
        with pytest.raises(EmbeddingError):
            embed_batch(['ok', '  '])

    def test_generate_embeddings_batches(self):
        calls = []

        def fake_embed(texts):
            calls.append(len(texts))
            return [[0.0] for _ in texts]

        progress = MagicMock()
        result = generate_embeddings([f't{i}' for i in range(250)], embed_func=fake_embed, on_progress=progress)

        assert len(result) == 250
        assert calls == [100, 100, 50]
        assert progress.call_args_list[-1].args == (250, 250)


class TestQueryEmbedding:

    def test_normalize_query(self):
        assert normalize_query('  what   is\n clause 4? ') == 'what is clause 4?'

    @pytest.mark.parametrize('query', ['', '   ', 'x' * 4001])
    def test_invalid_query(self, query):
        with pytest.raises(QueryValidationError):
            normalize_query(query)

    def test_embed_query(self):
        reply = httpx.Response(
            200, json={'embedding': {'values': [0.5, 0.25]}},
            request=httpx.Request('POST', 'https://gemini.test'),
        )
        with patch.object(httpx.Client, 'post', return_value=reply) as mock_post:
            assert embed_query('termination') == [0.5, 0.25]

        assert mock_post.call_args.kwargs['json']['taskType'] == 'RETRIEVAL_QUERY'

    def test_embed_query_http_error(self):
        reply = httpx.Response(500, request=httpx.Request('POST', 'https://gemini.test'))
        with patch.object(httpx.Client, 'post', return_value=reply):
            with pytest.raises(EmbeddingError, match='500'):
                embed_query('termination')


# ============================================================================
# Vector store
# ============================================================================

class TestPineconeVectorStore:

    @pytest.fixture
    def index(self):
        with patch('apps.rag.vectorstore.Pinecone') as mock_pinecone:
            index = MagicMock()
            mock_pinecone.return_value.Index.return_value = index
            yield index

    def test_upsert_in_batches(self, index):
        vectors = [{'id': vector_id('doc', i), 'values': [0.1], 'metadata': {}} for i in range(150)]

        written = PineconeVectorStore().upsert(vectors, namespace='doc')

        assert written == 150
        assert [len(c.kwargs['vectors']) for c in index.upsert.call_args_list] == [100, 50]
        assert index.upsert.call_args.kwargs['namespace'] == 'doc'

    def test_query_sorted_by_score(self, index):
        index.query.return_value = {'matches': [
            {'id': 'doc-0', 'score': 0.4, 'metadata': {'text': 'low'}},
            {'id': 'doc-1', 'score': 0.9, 'metadata': {'text': 'high'}},
        ]}

        matches = PineconeVectorStore().query([0.1], top_k=5, namespace='doc')

        assert [m.id for m in matches] == ['doc-1', 'doc-0']
        assert index.query.call_args.kwargs == {
            'vector': [0.1], 'top_k': 5, 'include_metadata': True, 'namespace': 'doc',
        }

    def test_errors_are_wrapped(self, index):
        index.delete.side_effect = RuntimeError('boom')

        with pytest.raises(VectorStoreError, match='delete failed'):
            PineconeVectorStore().delete_document('doc')

    def test_missing_key(self, settings):
        settings.PINECONE_API_KEY = ''

        with pytest.raises(VectorStoreError):
            PineconeVectorStore()
