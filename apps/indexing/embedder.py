"""
Embedding generation for document chunks using the Gemini embedding API.

Chunks are sent through batchEmbedContents in groups of BATCH_SIZE with
task type RETRIEVAL_DOCUMENT. Queries use RETRIEVAL_QUERY (see
apps.rag.embeddings) against the same model.
"""
import logging
from typing import Callable, List, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

# Gemini accepts at most 100 requests per batch call
BATCH_SIZE = 100


class EmbeddingError(Exception):
    """Raised when embedding generation fails."""
    pass


def _model_path() -> str:
    return f"models/{settings.GEMINI_EMBED_MODEL}"


def _batch_url() -> str:
    return f"{settings.GEMINI_BASE_URL}/{_model_path()}:batchEmbedContents"


def embed_batch(texts: List[str]) -> List[List[float]]:
    """
    Embed up to BATCH_SIZE texts in one API call.

    Raises:
        EmbeddingError: If the API call fails or returns the wrong count
    """
    if not settings.GEMINI_API_KEY:
        raise EmbeddingError("GEMINI_API_KEY not configured")
    if any(not t or not t.strip() for t in texts):
        raise EmbeddingError("Cannot generate embedding for empty text")

    body = {
        'requests': [
            {
                'model': _model_path(),
                'content': {'parts': [{'text': text}]},
                'taskType': 'RETRIEVAL_DOCUMENT',
            }
            for text in texts
        ]
    }

    try:
        response = requests.post(
            _batch_url(),
            params={'key': settings.GEMINI_API_KEY},
            json=body,
            timeout=settings.GEMINI_EMBED_TIMEOUT,
        )
    except requests.exceptions.Timeout:
        raise EmbeddingError("Gemini embedding API timed out")
    except requests.exceptions.ConnectionError:
        raise EmbeddingError("Cannot connect to Gemini embedding API")
    except requests.exceptions.RequestException as e:
        raise EmbeddingError(f"Request failed: {e}")

    if response.status_code != 200:
        error_detail = response.text[:500] if response.text else "No details"
        raise EmbeddingError(
            f"Gemini embedding API returned {response.status_code}: {error_detail}"
        )

    embeddings = [e.get('values') for e in response.json().get('embeddings', [])]

    if len(embeddings) != len(texts) or not all(embeddings):
        raise EmbeddingError("No embedding in response for every text")

    dims = len(embeddings[0])
    if dims != settings.EMBEDDING_DIMENSIONS:
        logger.warning(f"Expected {settings.EMBEDDING_DIMENSIONS} dimensions, got {dims}")

    return embeddings


def generate_embeddings(
    texts: List[str],
    embed_func: Optional[Callable[[List[str]], List[List[float]]]] = None,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> List[List[float]]:
    """
    Embed any number of texts, batch by batch, preserving order.

    Args:
        texts: Texts to embed
        embed_func: Batch function to call (defaults to embed_batch); the
            worker passes a retrying wrapper
        on_progress: Optional callback(done, total) after each batch
    """
    embed_func = embed_func or embed_batch
    embeddings: List[List[float]] = []
    total = len(texts)

    for start in range(0, total, BATCH_SIZE):
        embeddings.extend(embed_func(texts[start:start + BATCH_SIZE]))
        if on_progress:
            on_progress(len(embeddings), total)

    logger.info(f"Generated {len(embeddings)} embeddings")
    return embeddings
