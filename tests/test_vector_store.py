"""Tests for the Qdrant vector store wrapper.

Most tests run against Qdrant's in-process ``:memory:`` mode; failure paths
use a mocked client.
"""

import uuid
from unittest.mock import Mock, patch

import numpy as np
import pytest

from newsrag import IndexedPoint, QdrantVectorStore
from newsrag.errors import (
    IndexOperationError,
    IndexProvisionError,
    VectorDimensionError,
)

from .conftest import MockEmbeddingService, TestConstants

SMALL_DIMENSION = 4


def make_point(
    text: str,
    point_id: str | None = None,
    dimension: int = TestConstants.EMBEDDING_DIMENSION,
) -> IndexedPoint:
    return IndexedPoint(
        id=point_id or str(uuid.uuid4()),
        vector=MockEmbeddingService(dimension).vector_for(text),
        payload={
            "text": text,
            "article_title": f"Title for {text}",
            "article_url": "https://news.example.com/a",
        },
    )


@pytest.fixture
def mock_client_store(sleep_recorder):
    client = Mock()
    store = QdrantVectorStore(
        client=client,
        collection_name=TestConstants.COLLECTION_NAME,
        dimension=SMALL_DIMENSION,
        sleep=sleep_recorder,
    )
    return store, client


class TestEnsureCollection:
    def test_creates_then_reuses(self, sleep_recorder):
        store = QdrantVectorStore(
            location=":memory:",
            collection_name="fresh_collection",
            dimension=8,
            sleep=sleep_recorder,
        )

        assert store.ensure_collection() is True
        assert store.ensure_collection() is False
        assert store.client.collection_exists("fresh_collection")
        store.close()

    def test_provision_failure(self, mock_client_store):
        store, client = mock_client_store
        client.collection_exists.side_effect = ConnectionError("refused")

        with pytest.raises(IndexProvisionError, match="refused"):
            store.ensure_collection()

    def test_existing_collection_is_not_recreated(self, mock_client_store):
        store, client = mock_client_store
        client.collection_exists.return_value = True

        assert store.ensure_collection() is False
        client.create_collection.assert_not_called()


class TestUpsertAndSearch:
    def test_search_empty_collection(self, qdrant_store):
        query = MockEmbeddingService().vector_for("anything")
        assert qdrant_store.search(None, query, top_k=3) == []

    def test_upsert_then_search(self, qdrant_store):
        points = [make_point(text) for text in ("rates", "storm", "election")]

        written = qdrant_store.upsert(None, points)

        assert written == 3
        assert qdrant_store.count() == 3
        query = MockEmbeddingService().vector_for("storm")
        hits = qdrant_store.search(None, query, top_k=3)
        assert len(hits) == 3
        assert hits[0].text == "storm"
        assert hits[0].title == "Title for storm"
        assert hits[0].id == points[1].id
        scores = [hit.score for hit in hits]
        assert scores == sorted(scores, reverse=True)

    def test_search_returns_fewer_than_top_k(self, qdrant_store):
        qdrant_store.upsert(None, [make_point("rates"), make_point("storm")])

        query = MockEmbeddingService().vector_for("rates")
        hits = qdrant_store.search(None, query, top_k=5)

        assert len(hits) == 2

    def test_upsert_same_ids_is_idempotent(self, qdrant_store):
        points = [make_point(text) for text in ("rates", "storm")]

        qdrant_store.upsert(None, points)
        qdrant_store.upsert(None, points)

        assert qdrant_store.count() == 2

    def test_upsert_new_ids_adds_points(self, qdrant_store):
        qdrant_store.upsert(None, [make_point("rates")])
        qdrant_store.upsert(None, [make_point("rates")])

        assert qdrant_store.count() == 2

    def test_pacing_after_each_batch(self, qdrant_store, sleep_recorder):
        points = [make_point(f"text {i}") for i in range(5)]

        qdrant_store.upsert(None, points, batch_size=2, pacing_seconds=0.1)

        assert sleep_recorder.delays == [0.1, 0.1, 0.1]
        assert qdrant_store.count() == 5

    def test_batches_are_acknowledged_in_order(self, qdrant_store):
        points = [make_point(f"text {i}") for i in range(250)]

        with patch.object(
            qdrant_store.client, "upsert", wraps=qdrant_store.client.upsert
        ) as spy:
            written = qdrant_store.upsert(None, points, batch_size=100)

        assert written == 250
        assert [len(c.kwargs["points"]) for c in spy.call_args_list] == [100, 100, 50]
        assert all(c.kwargs["wait"] is True for c in spy.call_args_list)
        assert qdrant_store.count() == 250


class TestFailures:
    def test_dimension_mismatch_rejected_before_any_write(self, mock_client_store):
        store, client = mock_client_store
        points = [
            make_point("ok", dimension=SMALL_DIMENSION),
            make_point("wrong", dimension=SMALL_DIMENSION + 1),
        ]

        with pytest.raises(VectorDimensionError):
            store.upsert(None, points)

        client.upsert.assert_not_called()

    def test_query_dimension_mismatch(self, mock_client_store):
        store, client = mock_client_store

        with pytest.raises(VectorDimensionError):
            store.search(None, np.zeros(SMALL_DIMENSION + 2, dtype=np.float32))

        client.query_points.assert_not_called()

    def test_batch_retried_until_success(self, mock_client_store, sleep_recorder):
        store, client = mock_client_store
        client.upsert.side_effect = [ConnectionError("reset"), None]
        points = [make_point("a", dimension=SMALL_DIMENSION)]

        written = store.upsert(None, points, pacing_seconds=0)

        assert written == 1
        assert client.upsert.call_count == 2
        assert sleep_recorder.delays == [0.5]

    def test_exhausted_retries_stop_later_batches(
        self, mock_client_store, sleep_recorder
    ):
        store, client = mock_client_store
        client.upsert.side_effect = ConnectionError("down")
        points = [make_point(str(i), dimension=SMALL_DIMENSION) for i in range(3)]

        with pytest.raises(IndexOperationError, match="down"):
            store.upsert(None, points, batch_size=2, pacing_seconds=0)

        assert client.upsert.call_count == 3
        for call in client.upsert.call_args_list:
            assert len(call.kwargs["points"]) == 2
        assert sleep_recorder.delays == [0.5, 1.0]

    def test_search_failure(self, mock_client_store):
        store, client = mock_client_store
        client.query_points.side_effect = TimeoutError("timed out")

        with pytest.raises(IndexOperationError, match="timed out"):
            store.search(None, np.zeros(SMALL_DIMENSION, dtype=np.float32))

    def test_count_failure(self, mock_client_store):
        store, client = mock_client_store
        client.count.side_effect = ConnectionError("refused")

        with pytest.raises(IndexOperationError):
            store.count()
