"""
Tests for progress events, the channel layer publisher and retry helpers.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from apps.indexing.events import UploadProgressEvent, user_group
from apps.indexing.publisher import publish_complete, publish_failed, publish_notification, publish_progress
from apps.indexing.retry import (
    EMBEDDING_RETRY,
    GENERATION_RETRY,
    RetryExhausted,
    RetryPolicy,
    call_with_retry,
    is_transient,
)


@pytest.fixture
def channel_layer():
    layer = MagicMock()
    layer.group_send = AsyncMock()
    with patch('apps.indexing.publisher.get_channel_layer', return_value=layer):
        yield layer


# ============================================================================
# Events
# ============================================================================

class TestUploadProgressEvent:

    def test_progress_omits_empty_message(self):
        event = UploadProgressEvent.progress('d1', 'j1', 'u1', 'EXTRACT', 10)

        assert event.to_dict() == {
            'type': 'upload_progress',
            'documentId': 'd1',
            'jobId': 'j1',
            'userId': 'u1',
            'stage': 'EXTRACT',
            'progress': 10,
        }

    def test_terminal_events(self):
        assert UploadProgressEvent.complete('d', 'j', 'u').to_dict()['stage'] == 'COMPLETE'

        failed = UploadProgressEvent.failed('d', 'j', 'u', 'Extraction error: empty').to_dict()
        assert failed['stage'] == 'FAILED'
        assert failed['progress'] == 0
        assert failed['message'] == 'Extraction error: empty'

    def test_user_group(self):
        assert user_group('abc') == 'user_abc'


# ============================================================================
# Publisher
# ============================================================================

class TestPublisher:

    def test_progress_goes_to_owner_group(self, channel_layer):
        publish_progress('d1', 'j1', 'u1', 'EMBED', 70, 'Generating embeddings...')

        group, message = channel_layer.group_send.call_args.args
        assert group == 'user_u1'
        assert message['type'] == 'upload_progress'
        assert message['data']['progress'] == 70

    def test_complete_and_failed(self, channel_layer):
        publish_complete('d1', 'j1', 'u1')
        publish_failed('d1', 'j1', 'u1', 'boom')

        types = [c.args[1]['type'] for c in channel_layer.group_send.call_args_list]
        assert types == ['upload_complete', 'upload_failed']

    def test_notification(self, channel_layer):
        publish_notification('u2', {'id': 'n1', 'title': 'Hi'})

        group, message = channel_layer.group_send.call_args.args
        assert group == 'user_u2'
        assert message == {'type': 'notification', 'data': {'id': 'n1', 'title': 'Hi'}}

    def test_send_failure_is_swallowed(self, channel_layer):
        channel_layer.group_send.side_effect = ConnectionError('redis down')

        publish_complete('d1', 'j1', 'u1')

    def test_no_channel_layer(self):
        with patch('apps.indexing.publisher.get_channel_layer', return_value=None):
            publish_complete('d1', 'j1', 'u1')


# ============================================================================
# Retry
# ============================================================================

class TestRetry:

    @pytest.mark.parametrize('message, expected', [
        ('Gemini API error 503: overloaded', True),
        ('Could not connect to Pinecone', True),
        ('429 RESOURCE_EXHAUSTED', True),
        ('Gemini API error 400: invalid argument', False),
        ('GEMINI_API_KEY not configured', False),
        ('Request blocked by Gemini: SAFETY', False),
        ('something odd happened', True),
    ])
    def test_is_transient(self, message, expected):
        assert is_transient(RuntimeError(message)) is expected

    def test_transport_errors_are_transient(self):
        assert is_transient(httpx.ConnectTimeout('slow'))

    def test_delay_doubles_and_is_capped(self):
        policy = RetryPolicy(retries=5, base_delay=1.0, max_delay=5.0, jitter=0.0)

        assert [policy.delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 5.0]

    def test_embedding_policy_makes_four_attempts(self):
        assert EMBEDDING_RETRY.attempts == 4

    @patch('apps.indexing.retry.time.sleep')
    def test_succeeds_after_transient_failures(self, mock_sleep):
        func = MagicMock(side_effect=[RuntimeError('503'), RuntimeError('timed out'), 'ok'])

        assert call_with_retry(func, GENERATION_RETRY, (RuntimeError,), 'Chat') == 'ok'
        assert func.call_count == 3
        assert mock_sleep.call_count == 2

    @patch('apps.indexing.retry.time.sleep')
    def test_exhausted(self, mock_sleep):
        func = MagicMock(side_effect=RuntimeError('503'))

        with pytest.raises(RetryExhausted) as exc_info:
            call_with_retry(func, GENERATION_RETRY, (RuntimeError,), 'Chat')

        assert exc_info.value.attempts == 3
        assert str(exc_info.value.last_error) == '503'
        assert func.call_count == 3
        assert mock_sleep.call_count == 2

    @patch('apps.indexing.retry.time.sleep')
    def test_permanent_error_is_raised_immediately(self, mock_sleep):
        func = MagicMock(side_effect=ValueError('401 unauthorized'))

        with pytest.raises(ValueError):
            call_with_retry(func, GENERATION_RETRY, (ValueError,), 'Chat')

        assert func.call_count == 1
        mock_sleep.assert_not_called()

    def test_other_exception_types_are_not_caught(self):
        func = MagicMock(side_effect=KeyError('x'))

        with pytest.raises(KeyError):
            call_with_retry(func, GENERATION_RETRY, (RuntimeError,), 'Chat')
