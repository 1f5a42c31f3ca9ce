"""Error kinds raised by flashcard generation and storage."""


class FlashcardError(Exception):
    """Base class for flashcard errors."""

    kind = "flashcard_error"


class FlashcardValidationError(FlashcardError):
    """Bad caller input. Fixable by the caller, never retried."""

    kind = "validation_error"


class ProviderError(FlashcardError):
    """The text-generation provider failed or returned nothing usable."""

    kind = "provider_error"

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.detail = detail


class ProviderTimeoutError(FlashcardError):
    """The provider did not answer within the configured timeout."""

    kind = "timeout_error"


class PersistenceError(FlashcardError):
    """The store is unavailable or rejected a write."""

    kind = "persistence_error"


class FlashcardNotFoundError(PersistenceError):
    kind = "not_found"
