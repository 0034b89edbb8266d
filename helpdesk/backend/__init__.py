"""Client for the reasoning backend that decides replies and actions."""

from .client import (
    BackendAPIError,
    BackendError,
    BackendReply,
    BackendResponseError,
    BackendTimeoutError,
    BackendUnavailableError,
    ReasoningBackendClient,
    get_backend_client,
)

__all__ = [
    "BackendAPIError",
    "BackendError",
    "BackendReply",
    "BackendResponseError",
    "BackendTimeoutError",
    "BackendUnavailableError",
    "ReasoningBackendClient",
    "get_backend_client",
]
