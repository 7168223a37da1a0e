"""HTTP surface for the chat service.

Routes: GET /, POST /api/chat, GET /api/history/{session_id},
POST /api/clear/{session_id}
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .config import config
from .conversation import ConversationManager
from .errors import InternalProcessingError, InvalidRequest
from .history_store import RedisConversationStore
from .services import Services

logger = config.get_logger(__name__)

CHAT_ERROR_MESSAGE = "An error occurred while processing your request."
HISTORY_ERROR_MESSAGE = "Failed to fetch history."
CLEAR_ERROR_MESSAGE = "Failed to clear session."


class ChatRequest(BaseModel):
    """Body of POST /api/chat. The query is validated by the core, not here."""

    model_config = ConfigDict(populate_by_name=True)

    query: Any = None
    session_id: str | None = Field(default=None, alias="sessionId")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    answer: str
    session_id: str = Field(alias="sessionId")


class MessageOut(BaseModel):
    sender: str
    text: str


class HistoryResponse(BaseModel):
    messages: list[MessageOut]


def get_conversation_manager(request: Request) -> ConversationManager:
    return request.app.state.conversation_manager


def create_app(services: Services | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        services: Pre-built clients. If None, they are built from config on
            startup and closed on shutdown.

    Returns:
        FastAPI: Configured application instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = services is None
        active = Services.from_config() if owned else services
        if owned and isinstance(active.history_store, RedisConversationStore):
            active.history_store.ping()
        app.state.services = active
        app.state.conversation_manager = active.conversation_manager()
        logger.info("Backend server is ready")

        yield

        if owned:
            active.close()

    app = FastAPI(
        title="NewsRAG API",
        description="Question answering over scraped news articles",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidRequest)
    async def invalid_request_handler(
        _request: Request, exc: InvalidRequest
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.get("/")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/chat", response_model=ChatResponse, response_model_by_alias=True)
    def chat(
        body: ChatRequest,
        manager: ConversationManager = Depends(get_conversation_manager),  # noqa: B008
    ) -> ChatResponse | JSONResponse:
        try:
            result = manager.answer_question(body.query, body.session_id)
        except InternalProcessingError:
            logger.exception("Error processing RAG pipeline")
            return JSONResponse(status_code=500, content={"error": CHAT_ERROR_MESSAGE})
        return ChatResponse(answer=result.answer, session_id=result.session_id)

    @app.get("/api/history/{session_id}", response_model=HistoryResponse)
    def history(
        session_id: str,
        manager: ConversationManager = Depends(get_conversation_manager),  # noqa: B008
    ) -> HistoryResponse | JSONResponse:
        try:
            messages = manager.get_history(session_id)
        except InternalProcessingError:
            logger.exception("Error fetching chat history")
            return JSONResponse(
                status_code=500, content={"error": HISTORY_ERROR_MESSAGE}
            )
        return HistoryResponse(
            messages=[MessageOut(**message.to_dict()) for message in messages]
        )

    @app.post("/api/clear/{session_id}", response_model=None)
    def clear(
        session_id: str,
        manager: ConversationManager = Depends(get_conversation_manager),  # noqa: B008
    ) -> dict[str, str] | JSONResponse:
        try:
            manager.clear_session(session_id)
        except InternalProcessingError:
            logger.exception("Error clearing session")
            return JSONResponse(status_code=500, content={"error": CLEAR_ERROR_MESSAGE})
        return {"message": "Session cleared successfully."}

    return app
