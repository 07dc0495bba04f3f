"""HTTP client wrappers for the Merkl API."""

from .client import (
    MerklApiClient,
    MerklApiError,
    RequestTimeout,
    UpstreamError,
    UpstreamUnreachableError,
    default_client,
)
from .query import encode_query

__all__ = [
    "MerklApiClient",
    "MerklApiError",
    "RequestTimeout",
    "UpstreamError",
    "UpstreamUnreachableError",
    "default_client",
    "encode_query",
]
