"""Data models for the RAG application."""

from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np

Sender = Literal["user", "bot"]
VALID_SENDERS = ("user", "bot")


@dataclass(frozen=True)
class Document:
    """A scraped news article, the unit handed to the ingestion pipeline."""

    id: str
    title: str
    url: str
    content: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        """Build a Document from a corpus record.

        Returns:
            Document populated from the record.

        Raises:
            ValueError: If a required field is missing.
        """
        try:
            return cls(
                id=str(data["id"]),
                title=str(data["title"]),
                url=str(data["url"]),
                content=str(data.get("content") or ""),
            )
        except KeyError as exc:
            msg = f"Corpus record missing field: {exc.args[0]}"
            raise ValueError(msg) from exc


@dataclass
class Chunk:
    """Represents a chunk of text from a single document."""

    text: str
    source_document_id: str
    source_title: str
    source_url: str
    index: int = 0
    embedding: np.ndarray | None = None

    def payload(self) -> dict[str, str]:
        """Payload stored next to the chunk's vector in the index."""  # noqa: DOC201
        return {
            "text": self.text,
            "article_title": self.source_title,
            "article_url": self.source_url,
        }


@dataclass(frozen=True)
class IndexedPoint:
    """A point as written to the vector index."""

    id: str
    vector: np.ndarray
    payload: dict[str, str]


@dataclass(frozen=True)
class SearchHit:
    """A point returned by a similarity search."""

    id: str
    score: float
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return str(self.payload.get("text", ""))

    @property
    def title(self) -> str:
        return str(self.payload.get("article_title", ""))


@dataclass(frozen=True)
class Message:
    """A single transcript entry."""

    sender: Sender
    text: str

    def __post_init__(self) -> None:
        if self.sender not in VALID_SENDERS:
            msg = f"Unknown message sender: {self.sender!r}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, str]:
        return {"sender": self.sender, "text": self.text}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        return cls(sender=data["sender"], text=data["text"])


@dataclass
class ChatResult:
    """Outcome of one chat request."""

    answer: str
    session_id: str
    is_new_session: bool = False
    contexts: list[SearchHit] = field(default_factory=list)


@dataclass
class IngestionReport:
    """Counters reported at the end of an ingestion run."""

    documents_processed: int = 0
    documents_skipped: int = 0
    chunks: int = 0
    points_upserted: int = 0
