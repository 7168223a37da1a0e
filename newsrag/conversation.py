"""Chat request orchestration: retrieve, prompt, generate, persist."""

import uuid

from .config import config
from .embeddings import EmbeddingService
from .errors import (
    EmbeddingResponseMalformed,
    EmbeddingServiceError,
    IndexOperationError,
    InvalidRequest,
    RetrievalFailure,
    VectorDimensionError,
)
from .generation import GenerationService
from .history_store import ConversationStore
from .models import ChatResult, Message, SearchHit
from .vector_store import QdrantVectorStore

logger = config.get_logger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"
SNIPPET_PREVIEW_LENGTH = 50

PROMPT_TEMPLATE = (
    "You are a helpful news assistant. Based on the following context, answer "
    "the user's question. Provide a concise answer and mention the source "
    "article titles if possible.\n\n"
    "Context:\n{context}\n\n"
    "Question:\n{question}\n\n"
    "Answer:"
)


class ConversationManager:
    """Answers one chat query at a time and records it in the session transcript.

    Every request retrieves from scratch; earlier turns are neither folded
    into the query embedding nor into the prompt.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: QdrantVectorStore,
        generation_service: GenerationService,
        history_store: ConversationStore,
        top_k: int | None = None,
    ) -> None:
        """Initialize ConversationManager.

        Args:
            embedding_service: Client used to embed the query.
            vector_store: Index searched for context.
            generation_service: Client producing the final answer.
            history_store: Per-session transcript store.
            top_k: Passages retrieved per query. If None, uses config.TOP_K.
        """
        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.generation_service = generation_service
        self.history_store = history_store
        self.top_k = top_k if top_k is not None else config.TOP_K

    @staticmethod
    def validate_query(query: object) -> str:
        """Reject anything that is not a non-blank string.

        Returns:
            The query unchanged.

        Raises:
            InvalidRequest: If the query is missing, not a string, or blank.
        """
        if not isinstance(query, str) or not query.strip():
            msg = "Query is required"
            raise InvalidRequest(msg)
        return query

    @staticmethod
    def resolve_session(session_id: str | None) -> tuple[str, bool]:
        """Return the session to use and whether it was generated here.

        Returns:
            Tuple of (session_id, is_new).
        """
        if session_id and session_id.strip():
            return session_id, False
        new_id = str(uuid.uuid4())
        logger.info("New session created: %s", new_id)
        return new_id, True

    def retrieve(self, query: str) -> list[SearchHit]:
        """Embed the query and fetch its nearest passages.

        An empty index is not an error; it simply yields no context.

        Returns:
            Up to ``top_k`` hits, most similar first.

        Raises:
            RetrievalFailure: If embedding or search fails.
        """
        logger.info("Embedding query: %s", query)
        try:
            query_embedding = self.embedding_service.embed_one(query)
            hits = self.vector_store.search(None, query_embedding, top_k=self.top_k)
        except (
            EmbeddingServiceError,
            EmbeddingResponseMalformed,
            IndexOperationError,
            VectorDimensionError,
        ) as exc:
            msg = f"Retrieval failed: {exc}"
            raise RetrievalFailure(msg) from exc

        logger.info(
            "Retrieved context snippets: %s",
            [hit.text[:SNIPPET_PREVIEW_LENGTH] + "..." for hit in hits],
        )
        return hits

    @staticmethod
    def build_context_prompt(question: str, hits: list[SearchHit]) -> str:
        """Build the grounded prompt from the retrieved passages.

        Returns:
            str: The prompt sent to the generation model.
        """
        sections = []
        for hit in hits:
            if hit.title:
                sections.append(f"Source: {hit.title}\n{hit.text}")
            else:
                sections.append(hit.text)
        return PROMPT_TEMPLATE.format(
            context=CONTEXT_SEPARATOR.join(sections),
            question=question,
        )

    def answer_question(
        self,
        query: object,
        session_id: str | None = None,
    ) -> ChatResult:
        """Answer a question with retrieved context and persist the exchange.

        The user and bot messages are written together after generation. If
        that write fails the request fails and no answer is returned.

        Returns:
            ChatResult with the answer and the session it was recorded under.

        Raises:
            InvalidRequest: If the query is blank, before any network call.
            RetrievalFailure: If the query cannot be embedded or searched.
            GenerationFailure: If the generation call fails.
            PersistenceError: If the transcript cannot be written.
        """
        question = self.validate_query(query)
        session_id, is_new = self.resolve_session(session_id)

        hits = self.retrieve(question)
        prompt = self.build_context_prompt(question, hits)

        logger.info("Generating final answer...")
        answer = self.generation_service.generate(prompt)

        self.history_store.extend(
            session_id,
            [
                Message(sender="user", text=question),
                Message(sender="bot", text=answer),
            ],
        )

        return ChatResult(
            answer=answer,
            session_id=session_id,
            is_new_session=is_new,
            contexts=hits,
        )

    def get_history(self, session_id: str) -> list[Message]:
        """Return the session transcript, oldest first.

        Raises:
            InvalidRequest: If the session id is blank.
        """  # noqa: DOC201
        if not session_id or not session_id.strip():
            msg = "Session id is required"
            raise InvalidRequest(msg)
        return self.history_store.read_all(session_id)

    def clear_session(self, session_id: str) -> None:
        """Delete the session transcript; a no-op for unknown sessions.

        Raises:
            InvalidRequest: If the session id is blank.
        """
        if not session_id or not session_id.strip():
            msg = "Session id is required"
            raise InvalidRequest(msg)
        self.history_store.clear(session_id)
        logger.info("Conversation history cleared for session %s", session_id)
