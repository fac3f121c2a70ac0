"""Hosted completion access for gymtime."""
from .client_factory import AIClientFactory, AIRequestContext
from .completion_client import (
    COMPLETION_TEMPERATURE,
    CompletionAPIError,
    CompletionClient,
    CompletionConfigError,
    CompletionDecodingError,
    CompletionError,
    CompletionNetworkError,
)

__all__ = [
    "AIClientFactory",
    "AIRequestContext",
    "COMPLETION_TEMPERATURE",
    "CompletionAPIError",
    "CompletionClient",
    "CompletionConfigError",
    "CompletionDecodingError",
    "CompletionError",
    "CompletionNetworkError",
]
