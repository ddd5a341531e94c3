"""
Context retrieval for document chat.

The query vector is matched against the document's chunks in Pinecone
using the first strategy that returns anything:

1. namespace: query the namespace named after the document
2. filter: query the default namespace with metadata document_id == id
3. scan: unfiltered query with a larger top_k, keeping only matches whose
   metadata document_id is the document

Matches scoring below RAG_MIN_RELEVANCE_SCORE are dropped. Strategy
errors are logged and treated as "no matches" so the next one is tried.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from django.conf import settings

from apps.rag.vectorstore import PineconeVectorStore, VectorMatch, VectorStoreError

logger = logging.getLogger(__name__)

STRATEGY_NAMESPACE = 'namespace'
STRATEGY_FILTER = 'filter'
STRATEGY_SCAN = 'scan'
STRATEGY_NONE = 'none'


@dataclass
class Source:
    """A chunk of the document used as chat context."""
    id: str
    text: str
    page: Optional[int]
    chunk_index: Optional[int]
    score: float

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'text': self.text,
            'page': self.page,
            'chunkIndex': self.chunk_index,
            'score': round(self.score, 4),
        }


@dataclass
class RetrievalResult:
    sources: List[Source] = field(default_factory=list)
    strategy: str = STRATEGY_NONE


def _as_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_source(match: VectorMatch) -> Source:
    metadata = match.metadata
    return Source(
        id=match.id,
        text=str(metadata.get('text', '')),
        page=_as_int(metadata.get('page')),
        chunk_index=_as_int(metadata.get('chunk_index')),
        score=match.score,
    )


def _safe(strategy: str, query: Callable[[], List[VectorMatch]]) -> List[VectorMatch]:
    try:
        return query()
    except VectorStoreError as e:
        logger.warning(f"Retrieval strategy '{strategy}' failed: {e}")
        return []


def retrieve_sources(
    store: PineconeVectorStore,
    document_id: str,
    query_embedding: List[float],
    top_k: Optional[int] = None,
    fallback_top_k: Optional[int] = None,
    min_score: Optional[float] = None,
) -> RetrievalResult:
    """
    Find the chunks of one document most relevant to a query.

    Returns:
        RetrievalResult with sources in descending score order and the
        strategy that produced the matches ("none" if all came back empty)
    """
    document_id = str(document_id)
    top_k = top_k or settings.RAG_TOP_K
    fallback_top_k = fallback_top_k or settings.RAG_FALLBACK_TOP_K
    min_score = settings.RAG_MIN_RELEVANCE_SCORE if min_score is None else min_score

    strategy = STRATEGY_NAMESPACE
    matches = _safe(strategy, lambda: store.query(
        vector=query_embedding, top_k=top_k, namespace=document_id,
    ))

    if not matches:
        strategy = STRATEGY_FILTER
        matches = _safe(strategy, lambda: store.query(
            vector=query_embedding, top_k=top_k,
            filter={'document_id': {'$eq': document_id}},
        ))

    if not matches:
        strategy = STRATEGY_SCAN
        matches = [
            m for m in _safe(strategy, lambda: store.query(
                vector=query_embedding, top_k=fallback_top_k,
            ))
            if str(m.metadata.get('document_id')) == document_id
        ][:top_k]

    if not matches:
        logger.info(f"No matches for document {document_id} with any strategy")
        return RetrievalResult(sources=[], strategy=STRATEGY_NONE)

    relevant = sorted(
        (m for m in matches if m.score >= min_score),
        key=lambda m: m.score,
        reverse=True,
    )

    logger.info(
        f"Retrieved {len(matches)} matches for document {document_id} via '{strategy}', "
        f"{len(relevant)} above {min_score}"
    )

    return RetrievalResult(sources=[_to_source(m) for m in relevant], strategy=strategy)
