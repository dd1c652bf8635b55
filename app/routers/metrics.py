from fastapi import APIRouter, Depends
from fastapi.responses import Response

from dependencies.services import get_metrics
from extensions.ext_metrics import ProxyMetrics

router = APIRouter()


@router.get("/metrics")
async def metrics(proxy_metrics: ProxyMetrics = Depends(get_metrics)):
    body, content_type = proxy_metrics.render()
    return Response(content=body, media_type=content_type)
