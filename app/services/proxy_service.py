"""
Proxy service module.

Contains services for:
- ProxyForwardService: signed forwarding to the API hosts with retry-by-regeneration
- CoverProxyService: unsigned binary passthrough for cover images
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from urllib.parse import quote, urlsplit

import httpx
from fastapi import Request
from fastapi.responses import Response

from exceptions.common import UpstreamForwardError
from libs.http_client import HttpClient, RetryController, UpstreamResponse
from libs.identity import Identity, IdentityGenerator
from libs.wbi import encode_query
from services.wbi_service import WbiSigner
from utils.http_forwarder import (
    COVER_ALLOWED_METHODS,
    MAIN_ALLOWED_METHODS,
    prepare_request_headers,
    relay_response_headers,
)

logger = logging.getLogger(__name__)

LEADING_NON_DIGITS_RE = re.compile(r"^\D+")


@dataclass(frozen=True)
class InboundRequest:
    method: str
    path: str
    query: dict[str, str] = field(default_factory=dict)
    raw_query: str = ""
    headers: tuple[tuple[str, str], ...] = ()
    body: bytes = b""

    @classmethod
    async def from_request(cls, request: Request) -> "InboundRequest":
        return cls(
            method=request.method,
            path=request.url.path,
            query=dict(request.query_params),
            raw_query=request.url.query,
            headers=tuple(request.headers.items()),
            body=await request.body(),
        )


@dataclass(frozen=True)
class RouteDecision:
    """Per inbound request; held constant across retry attempts."""

    base_url: str
    signed: bool
    referer: str
    origin: str


def origin_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def derive_referer(site_url: str, query: Mapping[str, str]) -> str:
    """
    Referer for a video-scoped call, in precedence order avid > bvid > aid.

    ``avid`` may carry a prefix such as ``av``; only its digits are kept.
    """
    site_url = site_url.rstrip("/")
    if query.get("avid"):
        return f"{site_url}/video/av{LEADING_NON_DIGITS_RE.sub('', query['avid'])}"
    if query.get("bvid"):
        return f"{site_url}/video/{query['bvid']}"
    if query.get("aid"):
        return f"{site_url}/video/av{query['aid']}"
    return f"{site_url}/"


def build_upstream_response(upstream: UpstreamResponse, allowed_methods: str) -> Response:
    response = Response(content=upstream.body, status_code=upstream.status_code)
    # appended one by one so repeated set-cookie headers each reach the client
    for name, value in relay_response_headers(upstream.headers, allowed_methods):
        response.headers.append(name, value)
    return response


def transport_error_message(exc: httpx.TransportError) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return "Upstream request timed out."
    if isinstance(exc, (httpx.ConnectError, httpx.ProxyError)):
        return "Upstream connection failed."
    return "Upstream request failed."


class ProxyForwardService:
    """
    Forwards inbound API calls to the primary (signed) or secondary host.

    Each attempt is built from scratch by ``build_attempt``: a new signature,
    timestamp, user agent and cookie set. Only the route decision is shared.
    """

    def __init__(
        self,
        client: HttpClient,
        signer: WbiSigner,
        identities: IdentityGenerator,
        retry: RetryController,
        api_host: str,
        secondary_host: str,
        secondary_prefix: str,
        site_url: str,
        sessdata: str = "",
        timeout: float | None = None,
    ):
        self.client = client
        self.signer = signer
        self.identities = identities
        self.retry = retry
        self.api_host = api_host.rstrip("/")
        self.secondary_host = secondary_host.rstrip("/")
        self.secondary_prefix = "/" + secondary_prefix.strip("/") if secondary_prefix.strip("/") else ""
        self.site_url = site_url
        self.sessdata = sessdata
        self.timeout = timeout

    def decide_route(self, path: str, query: Mapping[str, str]) -> RouteDecision:
        referer = derive_referer(self.site_url, query)
        prefix = self.secondary_prefix
        if prefix and (path == prefix or path.startswith(prefix + "/")):
            stripped = path[len(prefix) :] or "/"
            return RouteDecision(
                base_url=f"{self.secondary_host}{stripped}",
                signed=False,
                referer=referer,
                origin=origin_of(referer),
            )
        return RouteDecision(
            base_url=f"{self.api_host}{path}",
            signed=True,
            referer=referer,
            origin=origin_of(referer),
        )

    def build_cookie(self, identity: Identity) -> str:
        cookies = {}
        if self.sessdata:
            cookies["SESSDATA"] = self.sessdata
        cookies.update(identity.cookies)
        return "; ".join(f"{k}={v}" for k, v in cookies.items())

    async def build_target_url(self, inbound: InboundRequest, route: RouteDecision) -> str:
        if inbound.method == "GET" and route.signed:
            query = encode_query(await self.signer.sign(inbound.query))
        else:
            query = inbound.raw_query
        return f"{route.base_url}?{query}" if query else route.base_url

    async def build_attempt(
        self,
        inbound: InboundRequest,
        route: RouteDecision,
        attempt: int,
    ) -> UpstreamResponse:
        """Build and issue one attempt; nothing here is reused from earlier attempts."""
        target_url = await self.build_target_url(inbound, route)
        identity = self.identities.anonymous()
        headers = prepare_request_headers(
            inbound.headers,
            {
                "User-Agent": identity.user_agent,
                "Referer": route.referer,
                "Origin": route.origin,
                "Cookie": self.build_cookie(identity),
            },
        )

        response = await self.client.request(
            inbound.method,
            target_url,
            headers=headers,
            body=inbound.body or None,
            timeout=self.timeout,
        )

        logger.info(f"{response.status_code} - {response.latency_ms}ms (attempt {attempt})")
        if response.status_code != 200:
            logger.warning(
                f"Non-200 response: {inbound.method} {inbound.path}"
                f" -> {target_url} | status={response.status_code}"
                f" | attempt={attempt}/{self.retry.max_attempts}"
                f" | time={response.latency_ms}ms | user-agent={identity.user_agent}"
                f" | body={response.preview()!r}"
            )
        return response

    async def forward(self, inbound: InboundRequest) -> UpstreamResponse:
        route = self.decide_route(inbound.path, inbound.query)

        async def build(attempt: int) -> UpstreamResponse:
            return await self.build_attempt(inbound, route, attempt)

        try:
            response, attempts = await self.retry.run(build)
        except httpx.TransportError as e:
            logger.error(f"Bilibili proxy error: {inbound.method} {route.base_url}: {e!r}")
            raise UpstreamForwardError(transport_error_message(e), url=route.base_url) from e

        if len(attempts) > 1:
            logger.info(
                f"{inbound.method} {inbound.path} finished after {len(attempts)} attempts:"
                f" {[a.status_code for a in attempts]}"
            )
        return response

    async def handle_request(self, request: Request) -> Response:
        inbound = await InboundRequest.from_request(request)
        upstream = await self.forward(inbound)
        return build_upstream_response(upstream, MAIN_ALLOWED_METHODS)


class CoverProxyService:
    """
    GET-only passthrough to the cover image host.

    The body is relayed as raw bytes. Each request carries its own visitor
    identity (browser id cookie pair), independent from the API pipeline.
    """

    def __init__(
        self,
        client: HttpClient,
        identities: IdentityGenerator,
        cover_base_url: str,
        site_url: str,
        timeout: float | None = None,
    ):
        self.client = client
        self.identities = identities
        self.cover_base_url = cover_base_url.rstrip("/")
        self.site_url = site_url.rstrip("/")
        self.timeout = timeout

    def build_target_url(self, filename: str) -> str:
        return f"{self.cover_base_url}/{quote(filename)}"

    async def fetch(self, filename: str, inbound_headers: Mapping[str, str]) -> UpstreamResponse:
        target_url = self.build_target_url(filename)
        identity = self.identities.visitor()
        headers = prepare_request_headers(
            inbound_headers,
            {
                "User-Agent": identity.user_agent,
                "Referer": f"{self.site_url}/",
                "Cookie": identity.cookie_header(),
            },
        )
        try:
            response = await self.client.get(target_url, headers=headers, timeout=self.timeout)
        except httpx.TransportError as e:
            logger.error(f"Cover proxy error: {target_url}: {e!r}")
            raise UpstreamForwardError(transport_error_message(e), url=target_url) from e

        logger.info(f"cover {filename}: {response.status_code} - {response.latency_ms}ms")
        return response

    async def handle_request(self, request: Request, filename: str) -> Response:
        upstream = await self.fetch(filename, request.headers)
        return build_upstream_response(upstream, COVER_ALLOWED_METHODS)
