"""Error taxonomy for the parsing and query pipeline.

Every error carries a user-facing ``message`` and a ``retryable`` flag that
tells the caller whether offering "Try Again" makes sense.
"""

from __future__ import annotations


class FitLogError(Exception):
    retryable: bool = False
    default_message: str = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(FitLogError):
    default_message = "The language model is not configured."


class NoCredentialError(ConfigurationError):
    default_message = "No API key found. Please configure your OpenAI API key."


class InvalidCredentialError(ConfigurationError):
    default_message = "Invalid API key. Please check your OpenAI API key."


class TransportError(FitLogError):
    retryable = True

    def __init__(self, cause: BaseException | None = None, message: str | None = None) -> None:
        self.cause = cause
        if message is None and cause is not None:
            message = f"Network error: {cause}"
        super().__init__(message or "Network error. Please check your connection and try again.")


class RateLimitedError(FitLogError):
    retryable = True
    default_message = "Rate limit exceeded. Please wait a moment and try again."


class ServiceError(FitLogError):
    retryable = True
    default_message = "The language model service returned an error."


class MalformedResponseError(FitLogError):
    """The model replied, but not in the shape we asked for."""

    retryable = True
    default_message = "Invalid response from the language model. Please try again."


class DecodeError(MalformedResponseError):
    default_message = "Could not understand the parsed data. Please try again."


class RecordValidationError(FitLogError):
    """A user-edited record breaks a business rule and cannot be saved yet."""

    def __init__(self, message: str, field: str | None = None, index: int | None = None) -> None:
        self.field = field
        self.index = index
        super().__init__(message)
