"""Upstream HTTP client: pooled transport, middleware chain and attempt loop."""

from .client import HttpClient
from .middleware import Middleware, NextFn, chain, logging_middleware
from .models import HeaderPairs, UpstreamRequest, UpstreamResponse
from .retry import Attempt, AttemptOutcome, RequestBuilder, RetryController
from .transport import ForwardProxy, PoolLimits, mask_url_credentials

__all__ = [
    "HttpClient",
    "UpstreamRequest",
    "UpstreamResponse",
    "HeaderPairs",
    "PoolLimits",
    "ForwardProxy",
    "mask_url_credentials",
    "Middleware",
    "NextFn",
    "chain",
    "logging_middleware",
    "Attempt",
    "AttemptOutcome",
    "RequestBuilder",
    "RetryController",
]
