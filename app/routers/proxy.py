"""
Bilibili API gateway router.

Catch-all endpoint forwarding everything not handled by a reserved route.
Must be registered last.
"""

from fastapi import APIRouter, Depends, Request, Response

from dependencies.services import get_forward_service
from services.proxy_service import ProxyForwardService

router = APIRouter()


@router.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"],
    response_model=None,
)
async def proxy_gateway(
    request: Request,
    path: str,
    forward_service: ProxyForwardService = Depends(get_forward_service),
) -> Response:
    """
    Forward the request to the primary API host (WBI signed for GET) or,
    under the secondary prefix, to the secondary host unsigned.
    """
    return await forward_service.handle_request(request)
