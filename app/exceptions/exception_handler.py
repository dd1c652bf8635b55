import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from configs import app_config
from exceptions.common import BaseHTTPException
from utils.http_forwarder import cors_headers

logger = logging.getLogger(__name__)


def render_error(exc: BaseHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=cors_headers(),
    )


async def proxy_exception_handler(request: Request, exc: BaseHTTPException):
    logger.error(f"{exc.detail} on {request.method} {request.url.path}: {exc.message}")
    return render_error(exc)


async def http_exception_handler(request: Request, exc: HTTPException):
    """
    处理框架抛出的 HTTP 异常（如 405）
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers={**cors_headers(), **(exc.headers or {})},
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """
    捕获所有未被处理的异常
    """
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")

    content = {"error": "Internal server error"}
    if app_config.DEBUG:
        # DEBUG 模式返回异常类型,但不包含堆栈信息
        content["message"] = type(exc).__name__

    return JSONResponse(status_code=500, content=content, headers=cors_headers())


def set_up(app: FastAPI):
    app.add_exception_handler(BaseHTTPException, proxy_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
