import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class UpstreamRequest:
    """One outbound call. Attempts never share or mutate an instance."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    timeout: float = 30.0


# Ordered header pairs; repeated names such as set-cookie stay separate
HeaderPairs = tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class UpstreamResponse:
    status_code: int
    headers: HeaderPairs
    body: bytes
    latency_ms: int
    request: UpstreamRequest

    def header(self, name: str) -> str | None:
        """First value of ``name``, case-insensitive."""
        lowered = name.lower()
        return next((value for key, value in self.headers if key.lower() == lowered), None)

    def json(self) -> Any:
        return json.loads(self.body)

    def preview(self, limit: int = 300) -> str:
        """Leading part of the body for log lines; binary bodies degrade to replacement chars."""
        return self.body[:limit].decode("utf-8", errors="replace")
