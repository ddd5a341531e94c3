"""
Pinecone vector store for document chunks.

Each document's vectors are written to a namespace named after the
document ID, with metadata:
    document_id, user_id, chunk_index, page, text

Vector IDs are "<document_id>-<chunk_index>", so re-processing a document
overwrites its previous vectors.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from django.conf import settings
from pinecone import Pinecone

logger = logging.getLogger(__name__)

# Pinecone recommends upserting at most ~100 vectors per request
UPSERT_BATCH_SIZE = 100


class VectorStoreError(Exception):
    """Raised when a Pinecone call fails."""
    pass


@dataclass
class VectorMatch:
    id: str
    score: float
    metadata: Dict[str, Any]


def vector_id(document_id: str, chunk_index: int) -> str:
    return f"{document_id}-{chunk_index}"


class PineconeVectorStore:
    """Thin wrapper over a Pinecone index."""

    def __init__(self, api_key: Optional[str] = None, index_name: Optional[str] = None):
        api_key = api_key or settings.PINECONE_API_KEY
        if not api_key:
            raise VectorStoreError("PINECONE_API_KEY not configured")
        self.index_name = index_name or settings.PINECONE_INDEX_NAME
        self.pc = Pinecone(api_key=api_key)
        self.index = self.pc.Index(self.index_name)

    def upsert(self, vectors: List[dict], namespace: str) -> int:
        """
        Upsert vectors ({id, values, metadata}) into a namespace.

        Returns:
            Number of vectors written
        """
        written = 0
        try:
            for start in range(0, len(vectors), UPSERT_BATCH_SIZE):
                batch = vectors[start:start + UPSERT_BATCH_SIZE]
                self.index.upsert(vectors=batch, namespace=namespace)
                written += len(batch)
        except Exception as e:
            raise VectorStoreError(f"Pinecone upsert failed: {e}")

        logger.info(f"Upserted {written} vectors into namespace {namespace}")
        return written

    def query(
        self,
        vector: List[float],
        top_k: int,
        namespace: Optional[str] = None,
        filter: Optional[dict] = None,
    ) -> List[VectorMatch]:
        """Nearest neighbours of a vector, highest score first."""
        kwargs: Dict[str, Any] = {
            'vector': vector,
            'top_k': top_k,
            'include_metadata': True,
        }
        if namespace:
            kwargs['namespace'] = namespace
        if filter:
            kwargs['filter'] = filter

        try:
            results = self.index.query(**kwargs)
        except Exception as e:
            raise VectorStoreError(f"Pinecone query failed: {e}")

        matches = [
            VectorMatch(
                id=match['id'],
                score=float(match['score'] or 0.0),
                metadata=dict(match.get('metadata') or {}),
            )
            for match in (results.get('matches') or [])
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches

    def delete_document(self, document_id: str) -> None:
        """Remove every vector of a document (its whole namespace)."""
        try:
            self.index.delete(delete_all=True, namespace=str(document_id))
        except Exception as e:
            raise VectorStoreError(f"Pinecone delete failed: {e}")
        logger.info(f"Deleted vectors for document {document_id}")

    def describe(self) -> dict:
        """Index statistics (used by the readiness check)."""
        try:
            stats = self.index.describe_index_stats()
        except Exception as e:
            raise VectorStoreError(f"Pinecone describe failed: {e}")
        return {
            'index': self.index_name,
            'total_vectors': stats.get('total_vector_count', 0),
        }


_store: Optional[PineconeVectorStore] = None


def get_vector_store() -> PineconeVectorStore:
    """Get the shared vector store (lazy initialization)."""
    global _store
    if _store is None:
        _store = PineconeVectorStore()
    return _store


def reset_vector_store():
    """Reset the cached store. Useful for testing."""
    global _store
    _store = None
