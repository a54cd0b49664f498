"""HTTP clients for OpenCost and exchange-rate upstreams."""

from .errors import (
    DecodeError,
    FetchCancelledError,
    FetchError,
    RetriesExhaustedError,
    TransportError,
    UpstreamStatusError,
)
from .opencost import DEFAULT_EXCHANGE_RATE_URL, OpenCostClient

__all__ = [
    "OpenCostClient",
    "DEFAULT_EXCHANGE_RATE_URL",
    "FetchError",
    "TransportError",
    "UpstreamStatusError",
    "DecodeError",
    "FetchCancelledError",
    "RetriesExhaustedError",
]
