"""
Error types raised by the chat service and provider adapters.

Routers translate these into HTTP responses; nothing below the API layer
raises HTTPException.
"""


class ChatServiceError(Exception):
    """Base class for chat service errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ChatServiceError):
    """A chat or provider company reference did not resolve."""


class ConfigurationError(ChatServiceError):
    """Provider credentials are missing something the adapter needs."""


class UnsupportedProviderError(ChatServiceError):
    """The provider value is not one of the supported backends."""

    def __init__(self, provider: str):
        super().__init__(f"Unsupported AI provider: {provider}")
        self.provider = provider


class ProviderError(ChatServiceError):
    """Provider call failed without a usable error message."""
