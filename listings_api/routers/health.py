from fastapi import APIRouter, Depends

from listings_api.core.config import settings
from listings_api.core.deps import get_store
from listings_api.stores.base import PropertyStore

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/health/store")
async def health_store(store: PropertyStore = Depends(get_store)):
    await store.ping()
    return {"status": "ok", "backend": settings.storage_backend}
