from fastapi import Request

from extensions.ext_metrics import ProxyMetrics
from libs.http_client import HttpClient
from services.proxy_service import CoverProxyService, ProxyForwardService
from services.wbi_service import WbiKeyCache


def get_http_client(request: Request) -> HttpClient:
    return request.app.state.http_client


def get_wbi_key_cache(request: Request) -> WbiKeyCache:
    return request.app.state.wbi_key_cache


def get_forward_service(request: Request) -> ProxyForwardService:
    return request.app.state.forward_service


def get_cover_service(request: Request) -> CoverProxyService:
    return request.app.state.cover_service


def get_metrics(request: Request) -> ProxyMetrics:
    return request.app.state.metrics
