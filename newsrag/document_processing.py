"""Corpus loading and sentence-aligned text chunking."""

import json
import re
from pathlib import Path

from .config import config
from .models import Chunk, Document

logger = config.get_logger(__name__)

# Whitespace that follows sentence-ending punctuation; the punctuation stays
# with the sentence before it.
SENTENCE_BOUNDARY = re.compile(r"(?<=[.?!])\s+")


class DocumentLoader:
    """Handles loading of the scraped article corpus."""

    @staticmethod
    def load_corpus(file_path: Path) -> list[Document]:
        """Load documents from a JSON array of article records.

        Returns:
            The documents in file order.

        Raises:
            ValueError: If the file is not a JSON array of records.
        """
        try:
            with file_path.open(encoding="utf-8") as file:
                records = json.load(file)
        except (OSError, json.JSONDecodeError):
            logger.exception("Error loading corpus %s", file_path)
            raise

        if not isinstance(records, list):
            msg = f"Corpus {file_path} must contain a JSON array of articles"
            raise ValueError(msg)  # noqa: TRY004

        documents = [Document.from_dict(record) for record in records]
        logger.info("Loaded %d articles from %s", len(documents), file_path)
        return documents


class TextChunker:
    """Splits text into sentence-aligned chunks with no overlap."""

    def __init__(self, chunk_size: int = 300) -> None:
        """Initialize the TextChunker with the chunk size bound.

        Args:
            chunk_size: Maximum characters per chunk. A single sentence longer
                than this becomes its own chunk rather than being split.

        Raises:
            ValueError: If chunk_size is not positive.
        """
        if chunk_size <= 0:
            msg = f"chunk_size must be positive, got {chunk_size}"
            raise ValueError(msg)
        self.chunk_size = chunk_size

    @staticmethod
    def split_sentences(text: str) -> list[str]:
        """Split text after '.', '?' or '!' followed by whitespace.

        Returns:
            Non-empty sentences in order.
        """
        return [s for s in SENTENCE_BOUNDARY.split(text) if s.strip()]

    def chunk_text(self, text: str) -> list[str]:
        """Accumulate sentences into chunks no longer than ``chunk_size``.

        Returns:
            Ordered chunk strings, each stripped of surrounding whitespace.
        """
        chunks: list[str] = []
        current = ""

        for sentence in self.split_sentences(text):
            if len(current + sentence) > self.chunk_size:
                if current.strip():
                    chunks.append(current.strip())
                current = ""
            current += sentence + " "

        if current.strip():
            chunks.append(current.strip())

        return chunks

    def chunk_document(self, document: Document) -> list[Chunk]:
        """Chunk a document's content and attach its source metadata.

        Returns:
            A list of Chunk objects, possibly empty.
        """
        chunks = [
            Chunk(
                text=text,
                source_document_id=document.id,
                source_title=document.title,
                source_url=document.url,
                index=index,
            )
            for index, text in enumerate(self.chunk_text(document.content))
        ]
        logger.debug("Article %s split into %d chunks", document.id, len(chunks))
        return chunks
