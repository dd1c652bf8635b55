from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from configs import app_config
from dependencies.services import get_http_client
from libs.http_client import HttpClient
from schemas.proxy import HealthStatus

router = APIRouter()

ROBOTS_TXT = "User-agent: *\nDisallow: /\n"


@router.get("/health", response_model=HealthStatus)
async def health(client: HttpClient = Depends(get_http_client)):
    return HealthStatus(
        timestamp=datetime.now(UTC).isoformat(),
        version=app_config.CURRENT_VERSION,
        proxy=client.proxy.masked() if client.proxy else "disabled",
    )


@router.get("/robots.txt", response_class=PlainTextResponse)
async def robots_txt():
    return ROBOTS_TXT
