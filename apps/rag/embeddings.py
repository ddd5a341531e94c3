"""
Query embeddings for document chat.

Uses the Gemini embedContent endpoint with task type RETRIEVAL_QUERY and
the same model the worker uses for chunks (RETRIEVAL_DOCUMENT).
"""
import logging
import re
from typing import List

import httpx
from django.conf import settings

from apps.indexing.embedder import EmbeddingError

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 4000


class QueryValidationError(Exception):
    """Raised when a chat message cannot be used as a query."""
    pass


def normalize_query(query: str) -> str:
    """
    Strip and collapse whitespace.

    Raises:
        QueryValidationError: If the query is empty or too long
    """
    normalized = re.sub(r'\s+', ' ', (query or '').strip())

    if not normalized:
        raise QueryValidationError("Query cannot be empty")

    if len(normalized) > MAX_QUERY_LENGTH:
        raise QueryValidationError(f"Query too long (max {MAX_QUERY_LENGTH} characters)")

    return normalized


def embed_query(query: str) -> List[float]:
    """
    Embed a normalized query.

    Raises:
        EmbeddingError: If the Gemini call fails
    """
    if not settings.GEMINI_API_KEY:
        raise EmbeddingError("GEMINI_API_KEY not configured")

    model = f"models/{settings.GEMINI_EMBED_MODEL}"

    try:
        with httpx.Client(timeout=float(settings.GEMINI_EMBED_TIMEOUT)) as client:
            response = client.post(
                f"{settings.GEMINI_BASE_URL}/{model}:embedContent",
                headers={"x-goog-api-key": settings.GEMINI_API_KEY},
                json={
                    "model": model,
                    "content": {"parts": [{"text": query}]},
                    "taskType": "RETRIEVAL_QUERY",
                },
            )
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPStatusError as e:
        logger.error(f"Gemini embedding request failed: {e}")
        raise EmbeddingError(f"Embedding service error: {e.response.status_code}")
    except httpx.RequestError as e:
        logger.error(f"Gemini embedding connection error: {e}")
        raise EmbeddingError("Could not connect to embedding service")

    embedding = (data.get("embedding") or {}).get("values")
    if not embedding:
        raise EmbeddingError("Gemini returned empty embedding")

    if len(embedding) != settings.EMBEDDING_DIMENSIONS:
        logger.warning(
            f"Embedding dimension mismatch: expected {settings.EMBEDDING_DIMENSIONS}, "
            f"got {len(embedding)}"
        )

    logger.debug(f"Generated query embedding with {len(embedding)} dimensions")
    return embedding
