import logging
from time import perf_counter, time

from fastapi import Request
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from exceptions.common import BlockedRequestError
from exceptions.exception_handler import render_error
from extensions.ext_logging import trace_id_generator, trace_id_var
from extensions.ext_metrics import UNMATCHED_ROUTE, ProxyMetrics
from libs.scanner import is_blocked_path
from utils.http_forwarder import COVER_ALLOWED_METHODS, MAIN_ALLOWED_METHODS, cors_headers

logger = logging.getLogger(__name__)

COVER_PATH_PREFIX = "/cover/"


def extract_remote_ip(request: Request) -> str:
    if request.headers.get("CF-Connecting-IP"):
        return request.headers["CF-Connecting-IP"]
    if request.headers.get("X-Forwarded-For"):
        return request.headers["X-Forwarded-For"]
    return request.client.host if request.client else ""


def allowed_methods_for(path: str) -> str:
    return COVER_ALLOWED_METHODS if path.startswith(COVER_PATH_PREFIX) else MAIN_ALLOWED_METHODS


class CustomMiddleware(BaseHTTPMiddleware):
    """Trace id and access log"""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        trace_id = request.headers.get("x-trace-id") or trace_id_generator()
        trace_id_var.set(trace_id)

        ip = extract_remote_ip(request)
        path = request.url.path
        logger.info(f"| {ip} | {request.method} {path}")
        start_time = time()
        try:
            response = await call_next(request)
        except Exception:
            process_time = round(time() - start_time, 4)
            logger.info(f"| {ip} | {request.method} {path} | 500 | process_time={process_time}s")
            raise
        process_time = round(time() - start_time, 4)
        response.headers["X-Process-Time"] = str(process_time)
        response.headers["X-Trace-ID"] = trace_id
        logger.info(f"| {ip} | {request.method} {path} | {response.status_code} | process_time={process_time}s")
        return response


class CorsMiddleware(BaseHTTPMiddleware):
    """Answers every OPTIONS request and stamps CORS headers on all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        headers = cors_headers(allowed_methods_for(request.url.path))
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=headers)

        response = await call_next(request)
        for key, value in headers.items():
            response.headers[key] = value
        return response


class ScannerGuardMiddleware(BaseHTTPMiddleware):
    """
    Rejects the bare root path and scanner-like paths with a plain 404 before
    anything is forwarded.
    """

    def __init__(self, app: ASGIApp, exempt_paths: frozenset[str] = frozenset()):
        super().__init__(app)
        self.exempt_paths = exempt_paths

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        path = request.url.path
        if is_blocked_path(path, self.exempt_paths):
            if path == "/":
                logger.warning(f"Blocked root access from {extract_remote_ip(request)}")
            else:
                logger.warning(
                    f"Blocked scanner request: {request.method} {path} from {extract_remote_ip(request)}"
                )
            return render_error(BlockedRequestError())
        return await call_next(request)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records duration and size of every response, unhandled errors included."""

    def __init__(self, app: ASGIApp, metrics: ProxyMetrics):
        super().__init__(app)
        self.metrics = metrics

    @staticmethod
    def route_label(request: Request) -> str:
        # the router stores the matched route in the shared scope
        route = request.scope.get("route")
        return getattr(route, "path", None) or UNMATCHED_ROUTE

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        start = perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            # rendered as 500 by the server error handler further out
            self.metrics.observe(
                method=request.method,
                route=self.route_label(request),
                code=500,
                duration_ms=(perf_counter() - start) * 1000,
            )
            raise
        duration_ms = (perf_counter() - start) * 1000

        content_length = response.headers.get("content-length")
        self.metrics.observe(
            method=request.method,
            route=self.route_label(request),
            code=response.status_code,
            duration_ms=duration_ms,
            size=int(content_length) if content_length and content_length.isdigit() else None,
        )
        return response
