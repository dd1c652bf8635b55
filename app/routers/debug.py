import time

from fastapi import APIRouter, Depends

from dependencies.services import get_wbi_key_cache
from schemas.proxy import WbiKeysInfo
from services.wbi_service import WbiKeyCache

router = APIRouter(prefix="/debug")


@router.get("/wbi-keys", response_model=WbiKeysInfo)
async def wbi_keys(key_cache: WbiKeyCache = Depends(get_wbi_key_cache)):
    """Current WBI key fragments; refreshes them first when expired."""
    keys = await key_cache.get_keys()
    expires_at = int(keys.expires_at)
    return WbiKeysInfo(
        img_key=keys.img_key,
        sub_key=keys.sub_key,
        expires_at=expires_at,
        expires_in=expires_at - int(time.time()),
    )
