"""
Header policies for forwarded requests and relayed responses.

Request headers go through a deny list so nothing revealing the proxy topology
(client address, forwarding chain, CDN metadata) reaches the upstream. Response
headers drop hop-by-hop and encoding fields before CORS headers are overlaid.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

MAIN_ALLOWED_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
COVER_ALLOWED_METHODS = "GET, OPTIONS"
ALLOWED_HEADERS = "Origin, X-Requested-With, Content-Type, Accept, Authorization"


@dataclass(frozen=True)
class HeaderPolicy:
    """
    Case-insensitive deny list for header mappings.

    Args:
        denied: Exact header names to drop
        denied_prefixes: Header name prefixes to drop (e.g. ``"cf-"``)
    """

    denied: frozenset[str] = field(default_factory=frozenset)
    denied_prefixes: tuple[str, ...] = ()

    def allows(self, name: str) -> bool:
        lowered = name.lower()
        if lowered in self.denied:
            return False
        return not lowered.startswith(self.denied_prefixes)

    def filter_pairs(self, headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
        """Allowed headers in order with lowercased names; repeated names are all kept."""
        items = headers.items() if isinstance(headers, Mapping) else headers
        return [(k.lower(), v) for k, v in items if self.allows(k)]

    def apply(self, headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> dict[str, str]:
        """Filter headers into a mapping, the last value winning for repeated names."""
        return dict(self.filter_pairs(headers))


UPSTREAM_REQUEST_POLICY = HeaderPolicy(
    denied=frozenset(
        {
            "host",
            "content-length",
            "connection",
            "via",
            "x-real-ip",
            # replaced by the generated identity
            "cookie",
            # httpx negotiates encodings it can decode itself
            "accept-encoding",
        }
    ),
    denied_prefixes=("x-forwarded-", "cf-"),
)

# content-length is recomputed for the decoded body
RELAYED_RESPONSE_POLICY = HeaderPolicy(
    denied=frozenset({"connection", "transfer-encoding", "content-encoding", "content-length"}),
)


def cors_headers(allowed_methods: str = MAIN_ALLOWED_METHODS) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": allowed_methods,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
    }


def prepare_request_headers(
    headers: Mapping[str, str] | Iterable[tuple[str, str]],
    overrides: Mapping[str, str],
) -> dict[str, str]:
    """
    Sanitize inbound headers and apply per-request overrides.

    Args:
        headers: Inbound request headers
        overrides: Headers set by the proxy (user agent, referer, cookies ...)

    Returns:
        Headers ready for the upstream, lowercased names
    """
    prepared = UPSTREAM_REQUEST_POLICY.apply(headers)
    prepared.update({k.lower(): v for k, v in overrides.items()})
    return prepared


def relay_response_headers(
    headers: Mapping[str, str] | Iterable[tuple[str, str]],
    allowed_methods: str = MAIN_ALLOWED_METHODS,
) -> list[tuple[str, str]]:
    """
    Upstream response headers as ordered pairs for the client.

    Every ``set-cookie`` is kept as its own pair; the CORS headers replace any
    upstream value of the same name.
    """
    cors = {k.lower(): v for k, v in cors_headers(allowed_methods).items()}
    relayed = [(k, v) for k, v in RELAYED_RESPONSE_POLICY.filter_pairs(headers) if k not in cors]
    relayed.extend(cors.items())
    return relayed
