import secrets

from fastapi import Depends, HTTPException, Query

from listings_api.core.config import settings
from listings_api.services.listings import ListingService
from listings_api.services.media import MediaStore
from listings_api.stores.base import PropertyStore
from listings_api.stores.json_store import JsonPropertyStore
from listings_api.stores.mongo_store import MongoPropertyStore

# Shared instances (created on first use, reused across requests)
_store: PropertyStore | None = None
_media: MediaStore | None = None


def build_store() -> PropertyStore:
    if settings.storage_backend == "json":
        return JsonPropertyStore(settings.data_file)
    if settings.storage_backend == "mongo":
        return MongoPropertyStore.from_uri(
            settings.mongodb_uri, settings.mongodb_db, settings.mongodb_collection
        )
    raise RuntimeError(f"Unknown storage backend: {settings.storage_backend}")


def get_store() -> PropertyStore:
    global _store
    if _store is None:
        _store = build_store()
    return _store


def get_media_store() -> MediaStore:
    global _media
    if _media is None:
        _media = MediaStore(
            settings.upload_dir,
            url_prefix=settings.uploads_url_prefix,
            base_url=settings.media_base_url,
        )
    return _media


def get_listing_service(
    store: PropertyStore = Depends(get_store),
    media: MediaStore = Depends(get_media_store),
) -> ListingService:
    return ListingService(
        store,
        media,
        max_images=settings.max_images,
        max_videos=settings.max_videos,
        max_upload_size=settings.max_upload_size,
    )


def require_admin_pass(pass_: str | None = Query(None, alias="pass")) -> None:
    """Shared-secret check for the admin page (``?pass=...``)."""
    if not pass_ or not secrets.compare_digest(pass_.encode(), settings.admin_pass.encode()):
        raise HTTPException(status_code=403, detail="Unauthorized")
