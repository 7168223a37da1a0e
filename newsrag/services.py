"""Process-wide client construction and teardown."""

from dataclasses import dataclass

from .config import config
from .conversation import ConversationManager
from .embeddings import EmbeddingService
from .generation import GenerationService
from .history_store import ConversationStore, get_conversation_store
from .pipeline import IngestionPipeline
from .vector_store import QdrantVectorStore

logger = config.get_logger(__name__)


@dataclass
class Services:
    """Long-lived clients shared by every request, built once at startup."""

    embedding_service: EmbeddingService
    vector_store: QdrantVectorStore
    generation_service: GenerationService
    history_store: ConversationStore

    @classmethod
    def from_config(cls) -> "Services":
        """Build every client from environment configuration.

        Returns:
            Services wired to the configured providers and stores.
        """
        services = cls(
            embedding_service=EmbeddingService(),
            vector_store=QdrantVectorStore(),
            generation_service=GenerationService(),
            history_store=get_conversation_store(config.CONVERSATION_BACKEND),
        )
        logger.info(
            "Services ready (collection=%s, conversation backend=%s)",
            services.vector_store.collection_name,
            services.history_store.backend,
        )
        return services

    def conversation_manager(self) -> ConversationManager:
        return ConversationManager(
            embedding_service=self.embedding_service,
            vector_store=self.vector_store,
            generation_service=self.generation_service,
            history_store=self.history_store,
        )

    def ingestion_pipeline(self, max_workers: int = 1) -> IngestionPipeline:
        return IngestionPipeline(
            vector_store=self.vector_store,
            embedding_service=self.embedding_service,
            max_workers=max_workers,
        )

    def close(self) -> None:
        """Close store connections; safe to call once at shutdown."""
        self.history_store.close()
        self.vector_store.close()
        logger.info("Services closed")
