import time
from collections.abc import Sequence
from typing import Any

import httpx

from .middleware import Middleware, chain
from .models import UpstreamRequest, UpstreamResponse
from .transport import ForwardProxy, PoolLimits


class HttpClient:
    """
    Pooled async client shared by every upstream call of the process.

    Redirects are relayed to the caller rather than followed, and proxy
    environment variables are ignored so ``proxy`` alone decides the route.
    Transport failures surface as ``httpx.TransportError``.
    """

    def __init__(
        self,
        middlewares: Sequence[Middleware] = (),
        pool_limits: PoolLimits | None = None,
        proxy: str | ForwardProxy | None = None,
        default_timeout: float = 30.0,
        default_headers: dict[str, str] | None = None,
    ):
        self._pool_limits = pool_limits or PoolLimits()
        self._proxy = ForwardProxy.from_url(proxy) if isinstance(proxy, str) else proxy
        self._default_timeout = default_timeout
        self._default_headers = default_headers or {}
        self._send = chain(middlewares, self._transmit)
        self._client: httpx.AsyncClient | None = None

    @property
    def default_timeout(self) -> float:
        return self._default_timeout

    @property
    def proxy(self) -> ForwardProxy | None:
        return self._proxy

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                limits=self._pool_limits.to_httpx(),
                proxy=self._proxy.url if self._proxy else None,
                timeout=self._default_timeout,
                follow_redirects=False,
                trust_env=False,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpClient":
        self._get_client()
        return self

    async def __aexit__(self, *_args: Any) -> None:
        await self.close()

    async def send(self, request: UpstreamRequest) -> UpstreamResponse:
        return await self._send(request)

    async def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> UpstreamResponse:
        return await self.send(
            UpstreamRequest(
                method=method.upper(),
                url=url,
                headers={**self._default_headers, **(headers or {})},
                body=body or b"",
                timeout=timeout or self._default_timeout,
            )
        )

    async def get(self, url: str, **kwargs: Any) -> UpstreamResponse:
        return await self.request("GET", url, **kwargs)

    async def _transmit(self, request: UpstreamRequest) -> UpstreamResponse:
        started = time.perf_counter()
        http_response = await self._get_client().request(
            method=request.method,
            url=request.url,
            headers=request.headers,
            content=request.body or None,
            timeout=request.timeout,
        )
        return UpstreamResponse(
            status_code=http_response.status_code,
            headers=tuple(http_response.headers.multi_items()),
            body=http_response.content,
            latency_ms=int((time.perf_counter() - started) * 1000),
            request=request,
        )
