"""Ingestion pipeline: Chunk -> Embed -> Upsert, one document at a time."""

from __future__ import annotations

import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING

from .config import config
from .document_processing import DocumentLoader, TextChunker
from .embeddings import EmbeddingService
from .errors import EmbeddingResponseMalformed, EmbeddingServiceError
from .models import Document, IndexedPoint, IngestionReport
from .retry import linear_backoff, retry_with_backoff
from .vector_store import QdrantVectorStore

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    import numpy as np

logger = config.get_logger(__name__)

RETRYABLE_EMBEDDING_ERRORS = (EmbeddingServiceError, EmbeddingResponseMalformed)


class IngestionPipeline:
    """Populates the vector collection from a batch of documents.

    Failure policy: the first batch that exhausts its retries aborts the
    current document and the whole run. Nothing is rolled back, and because
    every run generates fresh point ids, a rerun duplicates points unless the
    collection is cleared first.
    """

    def __init__(  # noqa: PLR0913
        self,
        vector_store: QdrantVectorStore,
        embedding_service: EmbeddingService | None = None,
        chunker: TextChunker | None = None,
        *,
        embedding_batch_size: int | None = None,
        pacing_seconds: float | None = None,
        max_workers: int = 1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the ingestion pipeline.

        Args:
            vector_store: Index the points are written to.
            embedding_service: Embedding client. If None, built from config.
            chunker: Text chunker. If None, uses config.CHUNK_SIZE.
            embedding_batch_size: Texts per embedding call. If None, uses
                config.EMBEDDING_BATCH_SIZE.
            pacing_seconds: Pause between embedding calls. If None, uses
                config.EMBEDDING_PACING_SECONDS.
            max_workers: Embedding calls in flight per document. 1 keeps the
                batches strictly sequential.
            sleep: Sleep function for pacing and backoff, injectable for tests.

        Raises:
            ValueError: If a batch size or worker count is not positive.
        """
        self.vector_store = vector_store
        self.embedding_service = embedding_service or EmbeddingService()
        self.chunker = chunker or TextChunker(chunk_size=config.CHUNK_SIZE)
        self.embedding_batch_size = embedding_batch_size or config.EMBEDDING_BATCH_SIZE
        self.pacing_seconds = (
            pacing_seconds
            if pacing_seconds is not None
            else config.EMBEDDING_PACING_SECONDS
        )
        if self.embedding_batch_size < 1 or max_workers < 1:
            msg = "embedding_batch_size and max_workers must be positive"
            raise ValueError(msg)
        self.max_workers = max_workers
        self._sleep = sleep

    def _embed_batch(self, batch: list[str], batch_number: int) -> list[np.ndarray]:
        return retry_with_backoff(
            lambda: self.embedding_service.embed(batch),
            max_attempts=config.RETRY_MAX_ATTEMPTS,
            backoff=linear_backoff(config.RETRY_BACKOFF_SECONDS),
            retry_on=RETRYABLE_EMBEDDING_ERRORS,
            sleep=self._sleep,
            description=f"Embedding batch {batch_number}",
        )

    def embed_texts(self, texts: list[str]) -> list[np.ndarray]:
        """Embed texts in fixed-size batches, preserving input order.

        Issues ``ceil(len(texts) / embedding_batch_size)`` embedding calls,
        not counting retries, with a pacing pause between consecutive calls.

        Returns:
            One vector per input text, in input order.
        """
        batches = [
            texts[start : start + self.embedding_batch_size]
            for start in range(0, len(texts), self.embedding_batch_size)
        ]
        if self.max_workers == 1:
            vectors: list[np.ndarray] = []
            for number, batch in enumerate(batches, start=1):
                if number > 1 and self.pacing_seconds > 0:
                    self._sleep(self.pacing_seconds)
                vectors.extend(self._embed_batch(batch, number))
            return vectors

        return self._embed_concurrently(batches)

    def _embed_concurrently(self, batches: list[list[str]]) -> list[np.ndarray]:
        """Fan batches out to a bounded pool, joined in batch order."""  # noqa: DOC201
        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        futures: list[Future[list[np.ndarray]]] = []
        try:
            for number, batch in enumerate(batches, start=1):
                if number > 1 and self.pacing_seconds > 0:
                    self._sleep(self.pacing_seconds)
                futures.append(executor.submit(self._embed_batch, batch, number))
            vectors: list[np.ndarray] = []
            for future in futures:
                vectors.extend(future.result())
        except BaseException:
            executor.shutdown(wait=True, cancel_futures=True)
            raise
        executor.shutdown(wait=True)
        return vectors

    def process_document(self, document: Document) -> int:
        """Chunk, embed and upsert one document.

        Returns:
            Number of points written; 0 when the document yields no chunks.
        """
        chunks = self.chunker.chunk_document(document)
        if not chunks:
            logger.info("Skipping article %s: no chunks", document.id)
            return 0

        logger.info(
            'Article "%s..." has %d chunks. Embedding...',
            document.title[:30],
            len(chunks),
        )
        vectors = self.embed_texts([chunk.text for chunk in chunks])

        points = []
        for chunk, vector in zip(chunks, vectors, strict=True):
            chunk.embedding = vector
            points.append(
                IndexedPoint(
                    id=str(uuid.uuid4()),
                    vector=vector,
                    payload=chunk.payload(),
                )
            )

        return self.vector_store.upsert(None, points)

    def ingest(self, documents: Iterable[Document]) -> IngestionReport:
        """Process documents in order, stopping at the first hard failure.

        Returns:
            Counters for the completed run.
        """
        report = IngestionReport()
        for document in documents:
            try:
                written = self.process_document(document)
            except Exception:
                logger.exception(
                    "Ingestion aborted at article %s; collection is partially "
                    "loaded. Fix the cause, clear the collection and rerun.",
                    document.id,
                )
                raise
            if written == 0:
                report.documents_skipped += 1
                continue
            report.documents_processed += 1
            report.chunks += written
            report.points_upserted += written

        logger.info(
            "Processed %d articles into %d chunks (%d skipped)",
            report.documents_processed,
            report.chunks,
            report.documents_skipped,
        )
        return report

    def run(self, corpus_path: Path | None = None) -> IngestionReport:
        """Load the corpus, make sure the collection exists, and ingest it.

        Returns:
            Counters for the completed run.
        """
        logger.info("Starting embedding process...")
        documents = DocumentLoader.load_corpus(corpus_path or config.CORPUS_FILE)
        self.vector_store.ensure_collection()
        return self.ingest(documents)
