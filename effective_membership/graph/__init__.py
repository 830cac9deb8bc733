"""Microsoft Graph access — HTTP client, directory lookups, retry wrapper."""

from .client import GraphClient, GraphAPIError
from .directory import DirectoryAPI
from .retry import call_with_retry, is_retryable

__all__ = [
    "GraphClient",
    "GraphAPIError",
    "DirectoryAPI",
    "call_with_retry",
    "is_retryable",
]
