"""Custom exception hierarchy for fintrack."""


class FintrackError(Exception):
    """Base exception for all fintrack errors."""


class ValidationError(FintrackError):
    """Raised when user input fails local validation.

    Validation errors are resolved before any network call and carry the
    offending form field so callers can surface them inline.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class NetworkError(FintrackError):
    """Raised on timeouts, connectivity loss or unstructured non-2xx responses."""


class ServerError(FintrackError):
    """Raised when the API answers with a structured error body."""

    DEFAULT_MESSAGE = "Erro na requisição"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message or self.DEFAULT_MESSAGE)
        self.status_code = status_code


class EntityNotFoundError(FintrackError):
    """Raised when a referenced entity does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a series or reference link is violated."""


class InvalidEntityStateError(FintrackError):
    """Raised when an entity is in an invalid state for the operation."""


class SeriesIntegrityError(FintrackError):
    """Raised when a record carries contradictory series membership."""


class ConfigurationError(FintrackError):
    """Raised when configuration is invalid or missing."""


class DataIntegrityWarning(UserWarning):
    """Non-fatal integrity problem found while reading series data.

    Collected and logged, never raised: the rest of the list still renders.
    """

    def __init__(self, message: str, record_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.record_id = record_id
