"""
Cover image passthrough.

Registered for every method so non-GET calls are answered here with 405
instead of falling through to the API catch-all.
"""

from fastapi import APIRouter, Depends, Request, Response
from starlette.exceptions import HTTPException

from dependencies.services import get_cover_service
from services.proxy_service import CoverProxyService

router = APIRouter(prefix="/cover")


@router.api_route(
    "/{filename}",
    methods=["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH"],
    response_model=None,
)
async def cover(
    request: Request,
    filename: str,
    cover_service: CoverProxyService = Depends(get_cover_service),
) -> Response:
    if request.method != "GET":
        raise HTTPException(status_code=405, detail="Method Not Allowed", headers={"Allow": "GET, OPTIONS"})
    return await cover_service.handle_request(request, filename)
