"""Embeddings client for Jina's OpenAI-compatible endpoint."""

import numpy as np
from openai import APIConnectionError, APIStatusError, OpenAI

from .config import config
from .errors import EmbeddingResponseMalformed, EmbeddingServiceError

logger = config.get_logger(__name__)


class EmbeddingService:
    """Handles embedding generation, one network call per ``embed`` call."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the EmbeddingService with provider credentials and model.

        Args:
            api_key: Jina API key. If None,
                reads from JINA_API_KEY environment variable.
            model: Embedding model name. If None, uses config.EMBEDDING_MODEL.
            base_url: Provider endpoint. If None, uses config.EMBEDDING_BASE_URL.
            timeout: Request timeout in seconds. If None, uses
                config.EMBEDDING_TIMEOUT.
        """
        api_key = api_key or config.get_jina_api_key()
        default_headers = config.get_api_headers()
        # Retries belong to the caller's batch policy, not the SDK.
        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url or config.EMBEDDING_BASE_URL,
            timeout=timeout if timeout is not None else config.EMBEDDING_TIMEOUT,
            max_retries=0,
            default_headers=default_headers or None,
        )
        self.model = model or config.EMBEDDING_MODEL

    def embed(self, texts: list[str]) -> list[np.ndarray]:
        """Embed a batch of texts with a single request.

        Args:
            texts: Input texts, sent together in one call.

        Returns:
            list[np.ndarray]: One vector per input text, in input order.

        Raises:
            EmbeddingServiceError: On a non-2xx response or transport failure.
            EmbeddingResponseMalformed: If the response does not carry one
                embedding per input text.
        """
        if not texts:
            return []

        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=texts,
                encoding_format="float",
            )
        except APIStatusError as exc:
            raise EmbeddingServiceError(
                "Embedding request rejected",
                status_code=exc.status_code,
                body=exc.response.text,
            ) from exc
        except APIConnectionError as exc:
            raise EmbeddingServiceError(
                f"Embedding request failed: {exc}",
            ) from exc

        embeddings = self._parse_embeddings(response, expected=len(texts))
        logger.debug("Embedded %d texts", len(embeddings))
        return embeddings

    def embed_one(self, text: str) -> np.ndarray:
        """Get embedding for a single text.

        Returns:
            np.ndarray: The embedding vector for the input text.
        """
        return self.embed([text])[0]

    @staticmethod
    def _parse_embeddings(response: object, expected: int) -> list[np.ndarray]:
        """Validate the response shape and convert items to vectors.

        Returns:
            Vectors ordered by the item ``index`` field when it is present.

        Raises:
            EmbeddingResponseMalformed: If the data array is missing, short,
                or holds an item without an embedding list.
        """
        data = getattr(response, "data", None)
        if not isinstance(data, list) or len(data) != expected:
            received = len(data) if isinstance(data, list) else "no"
            msg = f"Expected {expected} embeddings, got {received}"
            raise EmbeddingResponseMalformed(msg)

        if all(isinstance(getattr(item, "index", None), int) for item in data):
            data = sorted(data, key=lambda item: item.index)

        vectors = []
        for position, item in enumerate(data):
            embedding = getattr(item, "embedding", None)
            if not isinstance(embedding, list) or not embedding:
                msg = f"Embedding item {position} has no vector"
                raise EmbeddingResponseMalformed(msg)
            vectors.append(np.asarray(embedding, dtype=np.float32))
        return vectors
