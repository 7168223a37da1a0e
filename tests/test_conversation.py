"""Tests for ConversationManager."""

import uuid
from unittest.mock import Mock

import pytest

from newsrag import ConversationManager, IndexedPoint, Message
from newsrag.errors import (
    EmbeddingServiceError,
    GenerationFailure,
    InternalProcessingError,
    InvalidRequest,
    PersistenceError,
    RetrievalFailure,
)
from newsrag.models import SearchHit

from .conftest import TestConstants


@pytest.fixture
def indexed_manager(conversation_manager, qdrant_store, mock_embedding_service):
    """Conversation manager over a collection holding two articles."""
    passages = [
        ("The central bank kept interest rates unchanged.", "Central bank holds rates"),
        ("A powerful storm reached the coast overnight.", "Storm hits the coast"),
    ]
    qdrant_store.upsert(
        None,
        [
            IndexedPoint(
                id=str(uuid.uuid4()),
                vector=mock_embedding_service.vector_for(text),
                payload={
                    "text": text,
                    "article_title": title,
                    "article_url": "https://news.example.com/a",
                },
            )
            for text, title in passages
        ],
    )
    mock_embedding_service.calls.clear()
    return conversation_manager


class TestAnswerQuestion:
    def test_new_session_is_created_and_recorded(
        self, indexed_manager, history_store
    ):
        result = indexed_manager.answer_question("What happened to rates?")

        assert result.answer == TestConstants.DEFAULT_ANSWER
        assert result.is_new_session is True
        uuid.UUID(result.session_id)
        assert history_store.read_all(result.session_id) == [
            Message(sender="user", text="What happened to rates?"),
            Message(sender="bot", text=TestConstants.DEFAULT_ANSWER),
        ]

    def test_existing_session_is_extended(self, indexed_manager, history_store):
        indexed_manager.answer_question("First question?", session_id="session-1")
        result = indexed_manager.answer_question(
            "Second question?", session_id="session-1"
        )

        assert result.session_id == "session-1"
        assert result.is_new_session is False
        senders = [m.sender for m in history_store.read_all("session-1")]
        assert senders == ["user", "bot", "user", "bot"]

    def test_prompt_contains_context_and_question(
        self, indexed_manager, mock_generation_service
    ):
        result = indexed_manager.answer_question("What about the storm?")

        [prompt] = mock_generation_service.prompts
        assert prompt.startswith("You are a helpful news assistant.")
        assert "Source: Storm hits the coast" in prompt
        assert "A powerful storm reached the coast overnight." in prompt
        assert "\n\n---\n\n" in prompt
        assert prompt.endswith("Question:\nWhat about the storm?\n\nAnswer:")
        assert len(result.contexts) == 2

    def test_each_turn_retrieves_independently(
        self, indexed_manager, mock_embedding_service, mock_generation_service
    ):
        indexed_manager.answer_question("rates?", session_id="s")
        indexed_manager.answer_question("storm?", session_id="s")

        assert mock_embedding_service.calls == [["rates?"], ["storm?"]]
        assert "rates?" not in mock_generation_service.prompts[1]

    def test_empty_index_still_answers(
        self, conversation_manager, mock_generation_service
    ):
        result = conversation_manager.answer_question("Anything new?")

        assert result.answer == TestConstants.DEFAULT_ANSWER
        assert result.contexts == []
        assert "Context:\n\n\nQuestion:" in mock_generation_service.prompts[0]

    @pytest.mark.parametrize("query", ["", "   ", None, 42])
    def test_invalid_query_rejected_before_any_call(
        self, conversation_manager, mock_embedding_service, history_store, query
    ):
        with pytest.raises(InvalidRequest, match="Query is required"):
            conversation_manager.answer_question(query, session_id="s")

        assert mock_embedding_service.calls == []
        assert history_store.read_all("s") == []

    def test_retrieval_failure_writes_nothing(
        self, conversation_manager, mock_generation_service, history_store
    ):
        conversation_manager.embedding_service = Mock()
        conversation_manager.embedding_service.embed_one.side_effect = (
            EmbeddingServiceError("Embedding request rejected", status_code=500)
        )

        with pytest.raises(RetrievalFailure) as exc_info:
            conversation_manager.answer_question("rates?", session_id="s")

        assert isinstance(exc_info.value, InternalProcessingError)
        assert mock_generation_service.prompts == []
        assert history_store.read_all("s") == []

    def test_generation_failure_writes_nothing(
        self, conversation_manager, history_store
    ):
        conversation_manager.generation_service = Mock()
        conversation_manager.generation_service.generate.side_effect = (
            GenerationFailure("Generation returned an empty answer")
        )

        with pytest.raises(GenerationFailure):
            conversation_manager.answer_question("rates?", session_id="s")

        assert history_store.read_all("s") == []

    def test_persistence_failure_fails_request(self, conversation_manager):
        conversation_manager.history_store = Mock()
        conversation_manager.history_store.extend.side_effect = PersistenceError(
            "Failed to append to session s"
        )

        with pytest.raises(PersistenceError):
            conversation_manager.answer_question("rates?", session_id="s")

        conversation_manager.history_store.extend.assert_called_once()


class TestSessions:
    def test_resolve_session_keeps_given_id(self):
        assert ConversationManager.resolve_session("abc") == ("abc", False)

    @pytest.mark.parametrize("session_id", [None, "", "  "])
    def test_resolve_session_generates_id(self, session_id):
        new_id, is_new = ConversationManager.resolve_session(session_id)

        assert is_new is True
        assert str(uuid.UUID(new_id)) == new_id

    def test_clear_nonexistent_session(self, conversation_manager):
        conversation_manager.clear_session("never-used")

        assert conversation_manager.get_history("never-used") == []

    def test_clear_removes_history(self, indexed_manager):
        result = indexed_manager.answer_question("rates?")

        indexed_manager.clear_session(result.session_id)

        assert indexed_manager.get_history(result.session_id) == []

    @pytest.mark.parametrize("session_id", ["", "   "])
    def test_blank_session_id_rejected(self, conversation_manager, session_id):
        with pytest.raises(InvalidRequest):
            conversation_manager.get_history(session_id)
        with pytest.raises(InvalidRequest):
            conversation_manager.clear_session(session_id)


def test_build_context_prompt_without_titles():
    hits = [
        SearchHit(id="1", score=0.9, payload={"text": "First passage."}),
        SearchHit(id="2", score=0.8, payload={"text": "Second passage."}),
    ]

    prompt = ConversationManager.build_context_prompt("Question?", hits)

    assert "Context:\nFirst passage.\n\n---\n\nSecond passage.\n\n" in prompt
    assert "Source:" not in prompt


@pytest.mark.parametrize(("top_k", "expected"), [(0, 0), (5, 5), (None, 3)])
def test_top_k_is_taken_as_given(
    mock_embedding_service,
    qdrant_store,
    mock_generation_service,
    history_store,
    top_k,
    expected,
):
    manager = ConversationManager(
        embedding_service=mock_embedding_service,
        vector_store=qdrant_store,
        generation_service=mock_generation_service,
        history_store=history_store,
        top_k=top_k,
    )

    assert manager.top_k == expected
