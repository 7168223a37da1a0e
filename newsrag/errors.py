"""Exception hierarchy for the NewsRAG core.

Callers only need to tell two families apart: ``InvalidRequest`` for bad
caller input, and ``InternalProcessingError`` for everything that went wrong
downstream. The HTTP layer maps them to 400 and 500 respectively.
"""

MAX_ERROR_BODY_LENGTH = 500


class NewsRAGError(Exception):
    """Base class for all errors raised by the core."""


class InvalidRequest(NewsRAGError, ValueError):  # noqa: N818
    """The caller supplied input the core cannot act on."""


class InternalProcessingError(NewsRAGError):
    """A downstream dependency or processing stage failed."""


class EmbeddingServiceError(InternalProcessingError):
    """The embedding provider returned a non-2xx response or was unreachable."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        self.status_code = status_code
        self.body = body[:MAX_ERROR_BODY_LENGTH]
        detail = f"{message} (status={status_code})"
        if self.body:
            detail = f"{detail}. Body: {self.body}"
        super().__init__(detail)


class EmbeddingResponseMalformed(InternalProcessingError):  # noqa: N818
    """The embedding response did not hold one vector per submitted text."""


class VectorDimensionError(InternalProcessingError):
    """A vector does not match the dimension the collection was created with."""


class IndexProvisionError(InternalProcessingError):
    """The vector collection could not be checked or created."""


class IndexOperationError(InternalProcessingError):
    """An upsert or search against the vector index failed."""


class RetrievalFailure(InternalProcessingError):  # noqa: N818
    """Query embedding or similarity search failed during a chat request."""


class GenerationFailure(InternalProcessingError):  # noqa: N818
    """The text-generation call failed or returned nothing usable."""


class PersistenceError(InternalProcessingError):
    """The conversation store could not append, read or clear a transcript."""
