"""NewsRAG - question answering over scraped news articles."""

from .conversation import ConversationManager
from .document_processing import DocumentLoader, TextChunker
from .embeddings import EmbeddingService
from .generation import GenerationService
from .history_store import (
    ConversationStore,
    RedisConversationStore,
    SQLiteConversationStore,
    get_conversation_store,
)
from .models import (
    ChatResult,
    Chunk,
    Document,
    IndexedPoint,
    IngestionReport,
    Message,
    SearchHit,
)
from .pipeline import IngestionPipeline
from .services import Services
from .vector_store import QdrantVectorStore

__all__ = [
    "ChatResult",
    "Chunk",
    "ConversationManager",
    "ConversationStore",
    "Document",
    "DocumentLoader",
    "EmbeddingService",
    "GenerationService",
    "IndexedPoint",
    "IngestionPipeline",
    "IngestionReport",
    "Message",
    "QdrantVectorStore",
    "RedisConversationStore",
    "SQLiteConversationStore",
    "SearchHit",
    "Services",
    "TextChunker",
    "get_conversation_store",
]
