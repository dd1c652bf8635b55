"""Pytest 配置文件"""

import json

import pytest
from fastapi.testclient import TestClient

from app_factory import create_app
from libs.http_client import UpstreamRequest, UpstreamResponse
from libs.identity import IdentityGenerator

IMG_KEY = "7cd084941338484aae1ad9425b84077c"
SUB_KEY = "4932caff0ff746eab6f01bf08b70ac45"

NAV_PAYLOAD = {
    "code": -101,
    "message": "账号未登录",
    "data": {
        "isLogin": False,
        "wbi_img": {
            "img_url": f"https://i0.hdslb.com/bfs/wbi/{IMG_KEY}.png",
            "sub_url": f"https://i0.hdslb.com/bfs/wbi/{SUB_KEY}.png",
        },
    },
}


class FixedRandom:
    """Deterministic stand-in for ``random.Random``."""

    def __init__(self, value: float = 0.5, bits: int = 0xABCDEF):
        self.value = value
        self.bits = bits

    def random(self) -> float:
        return self.value

    def getrandbits(self, k: int) -> int:
        return self.bits & ((1 << k) - 1)


class FakeClock:
    def __init__(self, now: float = 1700000000.0, step: float = 0.0):
        self.now = now
        self.step = step

    def __call__(self) -> float:
        current = self.now
        self.now += self.step
        return current

    def advance(self, seconds: float):
        self.now += seconds


class FakeHttpClient:
    """
    Scripted replacement for ``HttpClient``.

    Each scripted item is either an exception to raise or a
    ``(status_code, body[, headers])`` tuple; dict bodies are sent as JSON.
    The last item repeats once the script runs out.
    """

    def __init__(self, *script, proxy=None):
        self.script = list(script)
        self.calls: list[UpstreamRequest] = []
        self.proxy = proxy
        self.closed = False

    async def request(self, method, url, headers=None, body=None, timeout=None) -> UpstreamResponse:
        req = UpstreamRequest(
            method=method,
            url=url,
            headers=dict(headers or {}),
            body=body or b"",
            timeout=timeout or 30.0,
        )
        self.calls.append(req)
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, BaseException):
            raise item

        status_code, content, *rest = item
        if isinstance(content, dict | list):
            content = json.dumps(content).encode("utf-8")
        headers = rest[0] if rest else ()
        if isinstance(headers, dict):
            headers = tuple(headers.items())
        return UpstreamResponse(
            status_code=status_code,
            headers=tuple(headers),
            body=content,
            latency_ms=5,
            request=req,
        )

    async def get(self, url, **kwargs) -> UpstreamResponse:
        return await self.request("GET", url, **kwargs)

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_client():
    """脚本化的上游客户端工厂"""
    return FakeHttpClient


@pytest.fixture
def nav_payload():
    return json.loads(json.dumps(NAV_PAYLOAD))


@pytest.fixture
def wbi_fragments():
    return IMG_KEY, SUB_KEY


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def identities():
    """身份生成器（固定 UA 与随机源）"""
    counter = iter(range(10**6))
    return IdentityGenerator(
        user_agent_provider=lambda: f"TestAgent/{next(counter)}",
        rng=FixedRandom(),
        clock=lambda: 1700000000.0,
    )


@pytest.fixture
def app():
    """创建应用实例"""
    return create_app()


@pytest.fixture
def client(app):
    """创建测试客户端"""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
async def async_client(app):
    """创建异步测试客户端"""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
