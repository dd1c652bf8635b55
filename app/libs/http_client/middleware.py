import logging
from collections.abc import Awaitable, Callable, Sequence
from functools import reduce

import httpx

from .models import UpstreamRequest, UpstreamResponse
from .transport import mask_url_credentials

NextFn = Callable[[UpstreamRequest], Awaitable[UpstreamResponse]]
Middleware = Callable[[UpstreamRequest, NextFn], Awaitable[UpstreamResponse]]


def chain(middlewares: Sequence[Middleware], send: NextFn) -> NextFn:
    """Wrap ``send`` so that ``middlewares[0]`` sees the request first."""

    def wrap(next_fn: NextFn, middleware: Middleware) -> NextFn:
        async def call(request: UpstreamRequest) -> UpstreamResponse:
            return await middleware(request, next_fn)

        return call

    return reduce(wrap, reversed(middlewares), send)


def logging_middleware(logger: logging.Logger | None = None) -> Middleware:
    log = logger or logging.getLogger(__name__)

    async def middleware(request: UpstreamRequest, next_fn: NextFn) -> UpstreamResponse:
        url = mask_url_credentials(request.url)
        log.debug(f"-> {request.method} {url}")
        try:
            response = await next_fn(request)
        except httpx.TransportError as e:
            log.warning(f"x- {request.method} {url} {type(e).__name__}: {e}")
            raise
        log.info(f"<- {response.status_code} ({response.latency_ms}ms) {request.method} {url}")
        return response

    return middleware
