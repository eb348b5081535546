"""
Error taxonomy for the knowledge-extraction core.

Chunk- and item-level errors are contained where they occur; document-level
errors abort only that document. See ExtractionOrchestrator for propagation.
"""


class KnowledgeCoreError(Exception):
    """Base class for all knowledge-core errors."""

    pass


class ContentEmptyError(KnowledgeCoreError):
    """
    Raised when a document has no text to process.
    Callers short-circuit this to an empty result.
    """

    pass


class ChunkProcessingError(KnowledgeCoreError):
    """
    Raised when one chunk fails to produce items.
    Non-fatal - the chunk is skipped and extraction continues.
    """

    def __init__(self, message: str, chunk_index: int):
        super().__init__(message)
        self.chunk_index = chunk_index


# Text-generation failures


class GenerationError(KnowledgeCoreError):
    """Base class for text-generation capability failures."""

    pass


class CredentialError(GenerationError):
    """
    Raised when the generation service rejects or lacks credentials.
    Fatal for the call/document that needed it, not for the service.
    """

    pass


class MissingCredentialError(CredentialError):
    """Raised when no credential is configured at all."""

    pass


class RateLimitError(GenerationError):
    """Raised on rate-limit or quota exhaustion. Fatal for the affected call."""

    pass


class GenerationNetworkError(GenerationError):
    """Raised on network failures and timeouts."""

    pass


class EmptyResponseError(GenerationError):
    """Raised when the generation service returns no text."""

    pass


# Parsing / persistence / validation


class ResponseFormatError(KnowledgeCoreError):
    """
    Raised when a model response cannot be interpreted.
    Repair is attempted first; the parser degrades to an empty result.
    """

    pass


class PersistenceError(KnowledgeCoreError):
    """Raised by the persistence capability. Isolated per item in batch saves."""

    pass


class ItemValidationError(KnowledgeCoreError):
    """
    Raised when an item is missing required fields.
    Such items are dropped with a logged reason, never surfaced to the caller.
    """

    pass


class ExtractionAbortedError(KnowledgeCoreError):
    """Raised when a batch extraction cannot proceed at all."""

    pass
