"""Configuration management for the NewsRAG service."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)


class Config:
    """Application configuration loaded from environment variables."""

    # Embedding provider (Jina, OpenAI-compatible endpoint)
    @classmethod
    def get_jina_api_key(cls) -> str:
        """Get the Jina API key from environment variables.

        Returns:
            Jina API key from environment or empty string if not set.
        """
        return os.getenv("JINA_API_KEY", "")

    # Generation provider (Gemini, OpenAI-compatible endpoint)
    @classmethod
    def get_google_api_key(cls) -> str:
        """Get the Google API key from environment variables.

        Returns:
            Google API key from environment or empty string if not set.
        """
        return os.getenv("GOOGLE_API_KEY", "")

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    OPENAI_LOG_LEVEL: str = os.getenv("OPENAI_LOG_LEVEL", "WARNING").upper()

    # Application Settings
    HOST: str = os.getenv("HOST", "0.0.0.0")  # noqa: S104
    PORT: int = int(os.getenv("PORT", "3001"))

    # Embedding Configuration
    EMBEDDING_BASE_URL: str = os.getenv("EMBEDDING_BASE_URL", "https://api.jina.ai/v1")
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "jina-embeddings-v2-base-en")
    EMBEDDING_DIMENSION: int = int(os.getenv("EMBEDDING_DIMENSION", "768"))
    EMBEDDING_TIMEOUT: float = float(os.getenv("EMBEDDING_TIMEOUT", "30"))
    EMBEDDING_BATCH_SIZE: int = int(os.getenv("EMBEDDING_BATCH_SIZE", "8"))
    EMBEDDING_PACING_SECONDS: float = float(
        os.getenv("EMBEDDING_PACING_SECONDS", "0.2")
    )

    # Retry policy shared by embedding and upsert batches
    RETRY_MAX_ATTEMPTS: int = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
    RETRY_BACKOFF_SECONDS: float = float(os.getenv("RETRY_BACKOFF_SECONDS", "0.5"))

    # Chat Model Configuration
    GENERATION_BASE_URL: str = os.getenv(
        "GENERATION_BASE_URL",
        "https://generativelanguage.googleapis.com/v1beta/openai/",
    )
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gemini-2.5-flash")
    CHAT_TEMPERATURE: float = float(os.getenv("CHAT_TEMPERATURE", "0.7"))
    GENERATION_TIMEOUT: float = float(os.getenv("GENERATION_TIMEOUT", "30"))

    # RAG Configuration
    CHUNK_SIZE: int = int(os.getenv("CHUNK_SIZE", "300"))
    TOP_K: int = int(os.getenv("TOP_K", "3"))
    CORPUS_FILE: Path = Path(os.getenv("CORPUS_FILE", "corpus.json"))

    # Vector Store Configuration
    QDRANT_URL: str = os.getenv("QDRANT_URL", "http://localhost:6333")
    QDRANT_API_KEY: str | None = os.getenv("QDRANT_API_KEY")
    COLLECTION_NAME: str = os.getenv("COLLECTION_NAME", "news_articles")
    UPSERT_BATCH_SIZE: int = int(os.getenv("UPSERT_BATCH_SIZE", "100"))
    UPSERT_PACING_SECONDS: float = float(os.getenv("UPSERT_PACING_SECONDS", "0.1"))

    # Conversation Store Configuration
    CONVERSATION_BACKEND: str = os.getenv("CONVERSATION_BACKEND", "redis").lower()
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_USERNAME: str = os.getenv("REDIS_USERNAME", "default")
    REDIS_PASSWORD: str | None = os.getenv("REDIS_PASSWORD")
    CONVERSATION_DB_PATH: Path = Path(
        os.getenv("CONVERSATION_DB_PATH", "data/conversations.db")
    )

    # API Header Configuration
    API_USER_AGENT: str = os.getenv("API_USER_AGENT", "NewsRAG/1.0")

    @classmethod
    def validate(cls, *, require_generation: bool = True) -> None:
        """Validate required configuration values.

        Args:
            require_generation: Also require the generation API key. Ingestion
                only talks to the embedding provider.

        Raises:
            ValueError: If any provider API key is not set.
        """
        missing = []
        if not cls.get_jina_api_key():
            missing.append("JINA_API_KEY")
        if require_generation and not cls.get_google_api_key():
            missing.append("GOOGLE_API_KEY")
        if missing:
            msg = (
                f"{', '.join(missing)} required. "
                "Please set it in .env file or environment."
            )
            raise ValueError(msg)

    @classmethod
    def setup_logging(cls) -> None:
        """Setup basic logging configuration.

        Configure logging once at process startup with:
        - Console output for all levels
        - Simple, readable format
        - Configurable level via environment variable
        """
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )

        # Configure third-party library log levels via environment variables
        third_party_level = getattr(logging, cls.OPENAI_LOG_LEVEL, logging.WARNING)
        for name in ("openai", "httpx"):
            logging.getLogger(name).setLevel(third_party_level)

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger with the specified name.

        Args:
            name: Logger name (typically __name__)

        Returns:
            Logger instance
        """
        return logging.getLogger(name)

    @classmethod
    def get_api_headers(cls) -> dict[str, str]:
        """Build default headers for outbound API calls.

        Returns:
            Mapping of header names to values used on outbound HTTP requests.
        """
        headers: dict[str, str] = {}

        if cls.API_USER_AGENT:
            headers["User-Agent"] = cls.API_USER_AGENT

        return headers


config = Config()
