# FILE: faqbot/errors.py
class FaqBotError(Exception):
    """Base class for FAQ assistant errors."""


class RequestValidationError(FaqBotError):
    """Raised when a required request field is missing."""


class ExtractionParseError(FaqBotError):
    """Structured extraction output was not a usable JSON object."""


class EmbeddingError(FaqBotError):
    """The embedding provider call failed."""


class GenerationError(FaqBotError):
    """The generation provider call failed (structured or streaming)."""


class DimensionMismatchError(FaqBotError):
    """Two vectors of different widths were compared."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"embedding dimension {actual} does not match query dimension {expected}")
        self.expected = expected
        self.actual = actual


class NoCollectionSpecified(FaqBotError):
    """Realtime query descriptor named no known collection."""


class RealtimeQueryError(FaqBotError):
    """The realtime data store query failed."""
