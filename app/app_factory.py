import importlib
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI

from configs import app_config
from exceptions import exception_handler
from middlewares.http_middleware import (
    CorsMiddleware,
    CustomMiddleware,
    MetricsMiddleware,
    ScannerGuardMiddleware,
)

logger = logging.getLogger(__name__)

# ext_logging first so later extensions log through its handlers
EXTENSIONS = ("ext_logging", "ext_metrics", "ext_upstream")

# Reserved endpoints that would otherwise match the scanner denylist
SCANNER_EXEMPT_PATHS = frozenset({"/robots.txt"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    from extensions import ext_upstream

    logger.info(
        f"{app_config.PROJECT_NAME} {app_config.CURRENT_VERSION} listening on "
        f"{app_config.HOST}:{app_config.PORT}"
    )
    yield
    await ext_upstream.shutdown(app)
    logger.info("Upstream connections closed")


def config_router(app: FastAPI):
    from routers import cover, debug, help, metrics, proxy

    for module in (help, metrics, debug, cover):
        app.include_router(module.router)
    # catch-all, keep last
    app.include_router(proxy.router)


def initialize_extensions(app: FastAPI):
    for name in EXTENSIONS:
        ext = importlib.import_module(f"extensions.{name}")
        started = time.perf_counter()
        ext.init_app(app)
        if app_config.DEBUG:
            logger.info("Loaded %s (%s ms)", name, round((time.perf_counter() - started) * 1000, 2))


def create_app() -> FastAPI:
    app = FastAPI(
        title=app_config.PROJECT_NAME,
        lifespan=lifespan,
        version=app_config.CURRENT_VERSION,
        # every path besides the reserved ones belongs to the upstream
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    initialize_extensions(app)

    # added innermost first: metrics -> trace/log -> cors -> scanner -> routes
    app.add_middleware(ScannerGuardMiddleware, exempt_paths=SCANNER_EXEMPT_PATHS)
    app.add_middleware(CorsMiddleware)
    app.add_middleware(CustomMiddleware)
    app.add_middleware(MetricsMiddleware, metrics=app.state.metrics)

    config_router(app)
    exception_handler.set_up(app)

    logger.info(f"Application created: {app_config.PROJECT_NAME}")
    return app
