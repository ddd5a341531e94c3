"""
Tests for per-document context retrieval with fallback strategies.
"""
from unittest.mock import MagicMock

from apps.rag.retrieval import (
    STRATEGY_FILTER,
    STRATEGY_NAMESPACE,
    STRATEGY_NONE,
    STRATEGY_SCAN,
    retrieve_sources,
)
from apps.rag.vectorstore import VectorMatch, VectorStoreError

DOC_ID = '3f1c9a52-0a0e-4c8e-9d1e-1a2b3c4d5e6f'
OTHER_DOC = '9b8c7d6e-0000-4c8e-9d1e-1a2b3c4d5e6f'
VECTOR = [0.1, 0.2, 0.3]


def match(idx, score, document_id=DOC_ID, page=1):
    return VectorMatch(
        id=f"{document_id}-{idx}",
        score=score,
        metadata={'document_id': document_id, 'chunk_index': idx, 'page': page, 'text': f"chunk {idx}"},
    )


def store_returning(*results):
    """A store whose successive query() calls return the given results (or raise them)."""
    store = MagicMock()
    store.query.side_effect = list(results)
    return store


class TestRetrieveSources:

    def test_namespace_strategy_first(self):
        store = store_returning([match(0, 0.7), match(1, 0.9)])

        result = retrieve_sources(store, DOC_ID, VECTOR, top_k=5, min_score=0.5)

        assert result.strategy == STRATEGY_NAMESPACE
        assert [s.chunk_index for s in result.sources] == [1, 0]
        assert store.query.call_args.kwargs['namespace'] == DOC_ID
        assert store.query.call_count == 1

    def test_falls_back_to_metadata_filter(self):
        store = store_returning([], [match(2, 0.8)])

        result = retrieve_sources(store, DOC_ID, VECTOR, top_k=5, min_score=0.5)

        assert result.strategy == STRATEGY_FILTER
        assert store.query.call_args.kwargs['filter'] == {'document_id': {'$eq': DOC_ID}}

    def test_falls_back_to_unfiltered_scan(self):
        scan = [match(0, 0.95, OTHER_DOC)] + [match(i, 0.9 - i * 0.05) for i in range(6)]
        store = store_returning([], [], scan)

        result = retrieve_sources(store, DOC_ID, VECTOR, top_k=3, fallback_top_k=50, min_score=0.5)

        assert result.strategy == STRATEGY_SCAN
        assert store.query.call_args.kwargs['top_k'] == 50
        assert len(result.sources) == 3
        assert all(s.id.startswith(DOC_ID) for s in result.sources)

    def test_strategy_errors_are_treated_as_empty(self):
        store = store_returning(VectorStoreError("namespace missing"), [match(0, 0.8)])

        result = retrieve_sources(store, DOC_ID, VECTOR, top_k=5, min_score=0.5)

        assert result.strategy == STRATEGY_FILTER
        assert len(result.sources) == 1

    def test_all_strategies_empty(self):
        store = store_returning([], [], [])

        result = retrieve_sources(store, DOC_ID, VECTOR)

        assert result.strategy == STRATEGY_NONE
        assert result.sources == []

    def test_low_scores_are_dropped(self):
        store = store_returning([match(0, 0.49), match(1, 0.5), match(2, 0.2)])

        result = retrieve_sources(store, DOC_ID, VECTOR, top_k=5, min_score=0.5)

        assert [s.chunk_index for s in result.sources] == [1]

    def test_source_dict(self):
        store = store_returning([match(4, 0.87654, page=7)])

        source = retrieve_sources(store, DOC_ID, VECTOR, min_score=0.5).sources[0]

        assert source.to_dict() == {
            'id': f"{DOC_ID}-4",
            'text': 'chunk 4',
            'page': 7,
            'chunkIndex': 4,
            'score': 0.8765,
        }
