"""Qdrant-backed vector index: collection provisioning, upsert and search."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

import numpy as np
from qdrant_client import QdrantClient, models

from .config import config
from .errors import IndexOperationError, IndexProvisionError, VectorDimensionError
from .models import IndexedPoint, SearchHit
from .retry import linear_backoff, retry_with_backoff

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = config.get_logger(__name__)

DEFAULT_DISTANCE = models.Distance.COSINE


def _batched(
    points: Sequence[IndexedPoint],
    size: int,
) -> Iterator[list[IndexedPoint]]:
    for start in range(0, len(points), size):
        yield list(points[start : start + size])


class QdrantVectorStore:
    """Thin wrapper around ``QdrantClient`` used by ingestion and chat."""

    backend = "qdrant"

    def __init__(  # noqa: PLR0913
        self,
        client: QdrantClient | None = None,
        *,
        url: str | None = None,
        api_key: str | None = None,
        location: str | None = None,
        collection_name: str | None = None,
        dimension: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Connect to Qdrant.

        Args:
            client: Pre-built client. When given, url/api_key/location are ignored.
            url: Qdrant server URL. If None, uses config.QDRANT_URL.
            api_key: Qdrant API key. If None, uses config.QDRANT_API_KEY.
            location: Use ``":memory:"`` for an in-process store instead of a server.
            collection_name: Default collection. If None, uses config.COLLECTION_NAME.
            dimension: Required vector size. If None, uses config.EMBEDDING_DIMENSION.
            sleep: Sleep function for backoff and pacing, injectable for tests.
        """
        if client is None:
            if location is not None:
                client = QdrantClient(location=location)
            else:
                client = QdrantClient(
                    url=url or config.QDRANT_URL,
                    api_key=api_key if api_key is not None else config.QDRANT_API_KEY,
                    timeout=int(config.EMBEDDING_TIMEOUT),
                )
        self.client = client
        self.collection_name = collection_name or config.COLLECTION_NAME
        self.dimension = dimension or config.EMBEDDING_DIMENSION
        self._sleep = sleep

    def ensure_collection(
        self,
        name: str | None = None,
        dimension: int | None = None,
        distance: models.Distance | str = DEFAULT_DISTANCE,
    ) -> bool:
        """Create the collection unless it already exists.

        Returns:
            True if the collection was created by this call.

        Raises:
            IndexProvisionError: If the existence check or creation fails.
        """
        name = name or self.collection_name
        size = dimension or self.dimension
        try:
            if self.client.collection_exists(collection_name=name):
                logger.info("Collection %s already exists", name)
                return False

            logger.info("Collection %s does not exist. Creating...", name)
            self.client.create_collection(
                collection_name=name,
                vectors_config=models.VectorParams(
                    size=size,
                    distance=models.Distance(distance),
                ),
            )
        except Exception as exc:
            msg = f"Failed to provision collection {name}: {exc}"
            raise IndexProvisionError(msg) from exc
        return True

    def _check_dimension(self, vector: np.ndarray) -> None:
        size = int(np.asarray(vector).shape[-1])
        if size != self.dimension:
            msg = (
                f"Vector dimension {size} does not match "
                f"collection dimension {self.dimension}"
            )
            raise VectorDimensionError(msg)

    def _upsert_batch(self, name: str, batch: list[IndexedPoint]) -> None:
        try:
            self.client.upsert(
                collection_name=name,
                points=[
                    models.PointStruct(
                        id=point.id,
                        vector=np.asarray(point.vector, dtype=np.float32).tolist(),
                        payload=point.payload,
                    )
                    for point in batch
                ],
                wait=True,
            )
        except Exception as exc:
            msg = f"Upsert of {len(batch)} points into {name} failed: {exc}"
            raise IndexOperationError(msg) from exc

    def upsert(
        self,
        name: str | None,
        points: Sequence[IndexedPoint],
        batch_size: int | None = None,
        pacing_seconds: float | None = None,
    ) -> int:
        """Upsert points in acknowledged batches, retrying each batch.

        Every vector is checked against the collection dimension before the
        first request goes out. A batch that still fails after the retry
        policy is exhausted raises and later batches are not sent.

        Returns:
            Number of points written.

        Raises:
            VectorDimensionError: If any vector has the wrong size.
            IndexOperationError: If a batch fails on every attempt.
        """
        name = name or self.collection_name
        batch_size = batch_size or config.UPSERT_BATCH_SIZE
        if pacing_seconds is None:
            pacing_seconds = config.UPSERT_PACING_SECONDS

        for point in points:
            self._check_dimension(point.vector)

        written = 0
        for batch_number, batch in enumerate(_batched(points, batch_size), start=1):
            retry_with_backoff(
                lambda batch=batch: self._upsert_batch(name, batch),
                max_attempts=config.RETRY_MAX_ATTEMPTS,
                backoff=linear_backoff(config.RETRY_BACKOFF_SECONDS),
                retry_on=(IndexOperationError,),
                sleep=self._sleep,
                description=f"Upsert batch {batch_number} into {name}",
            )
            written += len(batch)
            if pacing_seconds > 0:
                self._sleep(pacing_seconds)

        logger.info("Upserted %d points into %s", written, name)
        return written

    def search(
        self,
        name: str | None,
        query_vector: np.ndarray,
        top_k: int = 3,
        *,
        with_payload: bool = True,
    ) -> list[SearchHit]:
        """Return up to ``top_k`` nearest points to ``query_vector``.

        An empty collection yields an empty list.

        Returns:
            Hits ordered from most to least similar.

        Raises:
            VectorDimensionError: If the query vector has the wrong size.
            IndexOperationError: If the search request fails.
        """
        name = name or self.collection_name
        self._check_dimension(query_vector)
        try:
            response = self.client.query_points(
                collection_name=name,
                query=np.asarray(query_vector, dtype=np.float32).tolist(),
                limit=top_k,
                with_payload=with_payload,
            )
        except Exception as exc:
            msg = f"Search in {name} failed: {exc}"
            raise IndexOperationError(msg) from exc

        return [
            SearchHit(
                id=str(point.id),
                score=float(point.score),
                payload=dict(point.payload or {}),
            )
            for point in response.points
        ]

    def count(self, name: str | None = None) -> int:
        """Exact number of points in the collection.

        Raises:
            IndexOperationError: If the count request fails.
        """  # noqa: DOC201
        name = name or self.collection_name
        try:
            return self.client.count(collection_name=name, exact=True).count
        except Exception as exc:
            msg = f"Count of {name} failed: {exc}"
            raise IndexOperationError(msg) from exc

    def close(self) -> None:
        """Release the underlying client connection."""
        self.client.close()
