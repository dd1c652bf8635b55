"""
WBI key cache and signer.

The nav endpoint hands out two key fragments (``img_key``/``sub_key``) as the
file names of two image URLs. They are cached for ``ttl`` seconds and replaced
as one immutable ``WbiKeys`` object, so readers never see a half-updated pair.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from exceptions.common import UpstreamKeyFetchError
from libs.http_client import HttpClient
from libs.wbi import sign_params

logger = logging.getLogger(__name__)

NAV_REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/123.0.0.0 Safari/537.36"
    ),
}


@dataclass(frozen=True)
class WbiKeys:
    img_key: str
    sub_key: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


def key_from_url(url: str) -> str:
    """``https://i0.hdslb.com/bfs/wbi/7cd0...077c.png`` -> ``7cd0...077c``"""
    filename = url.rsplit("/", 1)[-1]
    return filename.rsplit(".", 1)[0] if "." in filename else filename


class WbiKeyCache:
    """
    Time-limited cache of the WBI key fragments.

    With ``single_flight`` enabled, concurrent callers arriving during an
    expired window wait on one shared refresh; otherwise each of them fetches.
    A failed refresh leaves the previous pair in place.
    """

    def __init__(
        self,
        client: HttpClient,
        nav_url: str,
        ttl: float = 8 * 60 * 60,
        single_flight: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self._client = client
        self.nav_url = nav_url
        self.ttl = ttl
        self.single_flight = single_flight
        self._clock = clock
        self._keys: WbiKeys | None = None
        self._lock = asyncio.Lock()

    @property
    def current(self) -> WbiKeys | None:
        """Last fetched pair, possibly stale."""
        return self._keys

    def _fresh_keys(self) -> WbiKeys | None:
        keys = self._keys
        if keys is not None and keys.is_valid(self._clock()):
            return keys
        return None

    async def get_keys(self) -> WbiKeys:
        keys = self._fresh_keys()
        if keys is not None:
            return keys

        if not self.single_flight:
            return await self.fetch_keys()

        async with self._lock:
            # another waiter may have refreshed while we queued on the lock
            keys = self._fresh_keys()
            if keys is not None:
                return keys
            return await self.fetch_keys()

    async def fetch_keys(self) -> WbiKeys:
        try:
            response = await self._client.get(self.nav_url, headers=NAV_REQUEST_HEADERS)
            payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Error fetching WBI keys: {e!r}")
            raise UpstreamKeyFetchError("WBI key endpoint unreachable.", url=self.nav_url) from e
        except ValueError as e:
            logger.error(f"Invalid JSON when fetching WBI keys: {e}")
            raise UpstreamKeyFetchError("WBI key endpoint returned invalid JSON.", url=self.nav_url) from e

        data = payload.get("data") if isinstance(payload, dict) else None
        wbi_img = data.get("wbi_img") if isinstance(data, dict) else None
        if not isinstance(wbi_img, dict) or not wbi_img.get("img_url") or not wbi_img.get("sub_url"):
            logger.error(f"Invalid response when fetching WBI keys: {payload!r:.500}")
            raise UpstreamKeyFetchError(url=self.nav_url)

        keys = WbiKeys(
            img_key=key_from_url(wbi_img["img_url"]),
            sub_key=key_from_url(wbi_img["sub_url"]),
            expires_at=self._clock() + self.ttl,
        )
        if len(keys.img_key) + len(keys.sub_key) != 64:
            logger.error(f"Malformed WBI keys: imgKey={keys.img_key!r}, subKey={keys.sub_key!r}")
            raise UpstreamKeyFetchError("WBI key fragments have an unexpected length.", url=self.nav_url)
        self._keys = keys

        logger.info(
            f"WBI keys fetched, valid for {self.ttl}s "
            f"(code={payload.get('code')}, message={payload.get('message')})"
        )
        logger.info(f"imgKey: {keys.img_key}, subKey: {keys.sub_key}")
        return keys


class WbiSigner:
    def __init__(self, key_cache: WbiKeyCache, clock: Callable[[], float] = time.time):
        self.key_cache = key_cache
        self._clock = clock

    async def sign(self, params: Mapping[str, Any]) -> dict[str, Any]:
        """Return ``params`` plus ``w_rid``/``wts`` signed with the current keys."""
        keys = await self.key_cache.get_keys()
        return sign_params(params, keys.img_key, keys.sub_key, wts=int(self._clock()))
