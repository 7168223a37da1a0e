"""Test configuration and fixtures for NewsRAG tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Mock services and API responses
- EmbeddingService fixtures
- Vector store fixtures
- Conversation store fixtures
- Orchestrator fixtures
"""

import hashlib
from unittest.mock import Mock, patch

import numpy as np
import pytest

from newsrag import (
    ConversationManager,
    Document,
    EmbeddingService,
    QdrantVectorStore,
    SQLiteConversationStore,
    TextChunker,
)


class TestConstants:
    """Centralized test constants to avoid repetition across test files."""

    __test__ = False

    # API Configuration
    TEST_API_KEY = "test-key"
    TEST_EMBEDDING_MODEL = "jina-embeddings-v2-base-en"
    EMBEDDING_DIMENSION = 768

    # Vector store
    COLLECTION_NAME = "test_news_articles"

    # Generation
    DEFAULT_ANSWER = "Markets rallied after the central bank held rates."


class SleepRecorder:
    """Drop-in replacement for ``time.sleep`` that only records delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class MockEmbeddingService:
    """Mock embedding service for testing without API calls.

    Generates deterministic embeddings based on text content hash and records
    every batch it receives.
    """

    def __init__(self, dimension: int = TestConstants.EMBEDDING_DIMENSION) -> None:
        self.dimension = dimension
        self.calls: list[list[str]] = []

    def vector_for(self, text: str) -> np.ndarray:
        """Generate deterministic mock embedding based on text hash."""
        seed = int.from_bytes(
            hashlib.sha256(text.lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        return (embedding / np.linalg.norm(embedding)).astype(np.float32)

    def embed(self, texts: list[str]) -> list[np.ndarray]:
        self.calls.append(list(texts))
        return [self.vector_for(text) for text in texts]

    def embed_one(self, text: str) -> np.ndarray:
        return self.embed([text])[0]


class MockGenerationService:
    """Returns a canned answer and keeps the prompts it was given."""

    def __init__(self, answer: str = TestConstants.DEFAULT_ANSWER) -> None:
        self.answer = answer
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer


def create_mock_embeddings_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock embeddings API response.

    Args:
        embeddings: List of embedding vectors to return.

    Returns:
        Mock object shaped like the SDK's embeddings response.
    """
    mock_response = Mock()
    mock_response.data = [
        Mock(embedding=emb, index=i) for i, emb in enumerate(embeddings)
    ]
    return mock_response


def create_mock_chat_response(content: str | None) -> Mock:
    """Create a mock chat completion response.

    Args:
        content: The content for the chat completion response.

    Returns:
        Mock object representing a chat completion response.
    """
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    return mock_response


def make_sentence(length: int, letter: str = "a") -> str:
    """Sentence of exactly ``length`` characters ending in a period."""
    return letter * (length - 1) + "."


@pytest.fixture
def openai_embeddings_api_mock():
    """Patch the SDK's embeddings.create method; no network calls are made."""
    with patch("openai.resources.embeddings.Embeddings.create") as mock_create:
        yield mock_create


@pytest.fixture
def embedding_service():
    """Default EmbeddingService with test API key for most tests."""
    return EmbeddingService(api_key=TestConstants.TEST_API_KEY)


@pytest.fixture
def mock_embedding_service():
    return MockEmbeddingService()


@pytest.fixture
def mock_generation_service():
    return MockGenerationService()


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def text_chunker():
    return TextChunker(chunk_size=300)


@pytest.fixture
def qdrant_store(sleep_recorder):
    """In-memory Qdrant store with the test collection already created."""
    store = QdrantVectorStore(
        location=":memory:",
        collection_name=TestConstants.COLLECTION_NAME,
        dimension=TestConstants.EMBEDDING_DIMENSION,
        sleep=sleep_recorder,
    )
    store.ensure_collection()
    yield store
    store.close()


@pytest.fixture
def history_store(tmp_path):
    """SQLite-backed conversation store in a temporary directory."""
    return SQLiteConversationStore(tmp_path / "conversations.db")


@pytest.fixture
def conversation_manager(
    mock_embedding_service, qdrant_store, mock_generation_service, history_store
):
    """ConversationManager wired to in-process fakes and stores."""
    return ConversationManager(
        embedding_service=mock_embedding_service,
        vector_store=qdrant_store,
        generation_service=mock_generation_service,
        history_store=history_store,
        top_k=3,
    )


@pytest.fixture
def sample_documents():
    """Three short articles, one of them without usable content."""
    return [
        Document(
            id="article_1",
            title="Central bank holds rates",
            url="https://news.example.com/rates",
            content=(
                "The central bank kept interest rates unchanged on Tuesday. "
                "Markets rallied after the announcement. "
                "Analysts expect a cut later this year."
            ),
        ),
        Document(
            id="article_2",
            title="Empty page",
            url="https://news.example.com/empty",
            content="",
        ),
        Document(
            id="article_3",
            title="Storm hits the coast",
            url="https://news.example.com/storm",
            content=(
                "A powerful storm reached the coast overnight. "
                "Thousands of homes lost power. Crews are working to restore it."
            ),
        ),
    ]
