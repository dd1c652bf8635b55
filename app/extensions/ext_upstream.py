import logging

from fastapi import FastAPI

from configs import app_config
from libs.http_client import ForwardProxy, HttpClient, PoolLimits, RetryController, logging_middleware
from libs.identity import IdentityGenerator
from services.proxy_service import CoverProxyService, ProxyForwardService
from services.wbi_service import WbiKeyCache, WbiSigner

logger = logging.getLogger(__name__)


def create_http_client() -> HttpClient:
    proxy = ForwardProxy(app_config.PROXY_URL.strip()) if app_config.PROXY_ENABLED else None
    return HttpClient(
        middlewares=[logging_middleware(logging.getLogger("upstream"))],
        pool_limits=PoolLimits(
            max_connections=app_config.HTTP_MAX_CONNECTIONS,
            max_keepalive=app_config.HTTP_MAX_KEEPALIVE_CONNECTIONS,
        ),
        proxy=proxy,
        default_timeout=app_config.UPSTREAM_TIMEOUT_SECONDS,
    )


def init_app(app: FastAPI):
    client = create_http_client()
    identities = IdentityGenerator()
    key_cache = WbiKeyCache(
        client,
        nav_url=f"{app_config.BILIBILI_API_HOST.rstrip('/')}{app_config.BILIBILI_NAV_PATH}",
        ttl=app_config.WBI_KEYS_TTL,
        single_flight=app_config.WBI_SINGLE_FLIGHT,
    )

    app.state.http_client = client
    app.state.wbi_key_cache = key_cache
    app.state.forward_service = ProxyForwardService(
        client=client,
        signer=WbiSigner(key_cache),
        identities=identities,
        retry=RetryController(
            max_attempts=app_config.MAX_RETRY_ATTEMPTS,
            retry_transport_errors=app_config.RETRY_ON_TRANSPORT_ERROR,
        ),
        api_host=app_config.BILIBILI_API_HOST,
        secondary_host=app_config.BILIBILI_SECONDARY_HOST,
        secondary_prefix=app_config.BILIBILI_SECONDARY_PREFIX,
        site_url=app_config.BILIBILI_SITE_URL,
        sessdata=app_config.BILIBILI_SESSDATA,
        timeout=app_config.UPSTREAM_TIMEOUT_SECONDS,
    )
    app.state.cover_service = CoverProxyService(
        client=client,
        identities=identities,
        cover_base_url=f"{app_config.BILIBILI_COVER_HOST.rstrip('/')}{app_config.BILIBILI_COVER_PREFIX}",
        site_url=app_config.BILIBILI_SITE_URL,
        timeout=app_config.UPSTREAM_TIMEOUT_SECONDS,
    )

    if client.proxy:
        logger.info(f"Using HTTP proxy: {client.proxy.masked()}")
    else:
        logger.info("Proxy: disabled - direct connection")


async def shutdown(app: FastAPI):
    client: HttpClient | None = getattr(app.state, "http_client", None)
    if client:
        await client.close()
