import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse
from pydantic import ValidationError
from starlette.datastructures import FormData, UploadFile

from listings_api.core.config import settings
from listings_api.core.deps import get_listing_service, get_store, require_admin_pass
from listings_api.core.errors import ListingNotFound, ListingValidationError, StorageError
from listings_api.core.limiter import limiter
from listings_api.schemas.property import ListingCreated, ListingDeleted, ListingFields, ListingUpdated
from listings_api.services.listings import ListingService, parse_reference_list
from listings_api.services.media import IMAGES, VIDEOS, UploadedMedia
from listings_api.stores.base import PropertyStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin-listings"])

CHUNK_SIZE = 1024 * 1024  # 1 MB streaming chunks


# ─── Helpers: multipart form → service arguments ─────────────────────────────

async def _read_upload(file: UploadFile, category: str) -> UploadedMedia:
    # Stream in chunks so an oversized file is rejected without loading all of it
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > settings.max_upload_size:
            raise ListingValidationError(
                f"File too large: {file.filename} "
                f"(max {settings.max_upload_size // 1024 // 1024} MB)"
            )
        chunks.append(chunk)
    return UploadedMedia(category=category, filename=file.filename or "upload", content=b"".join(chunks))


async def _collect_media(form: FormData) -> tuple[list[UploadedMedia], list[str]]:
    """Uploaded files for images/videos, plus video links sent as plain text."""
    uploads: list[UploadedMedia] = []
    links: list[str] = []
    for category in (IMAGES, VIDEOS):
        for value in form.getlist(category):
            if isinstance(value, UploadFile):
                if value.filename:  # empty file inputs arrive with no filename
                    uploads.append(await _read_upload(value, category))
            elif category == VIDEOS:
                links.extend(parse_reference_list(value))
    return uploads, links


def _parse_fields(form: FormData) -> dict:
    raw = {
        name: form.get(name)
        for name in ListingFields.model_fields
        if isinstance(form.get(name), str)
    }
    try:
        return ListingFields(**raw).model_dump(exclude_unset=True)
    except ValidationError as exc:
        raise ListingValidationError(str(exc)) from exc


# ─── Admin upload page ────────────────────────────────────────────────────────

@router.get("/property-upload", dependencies=[Depends(require_admin_pass)])
async def admin_upload_page():
    page = Path(settings.admin_page)
    if not page.is_file():
        raise HTTPException(status_code=404, detail="Admin page not found")
    return FileResponse(path=str(page), media_type="text/html")


# ─── List / get ───────────────────────────────────────────────────────────────

@router.get("/uploads", response_model=list[dict])
async def list_uploads(store: PropertyStore = Depends(get_store)):
    try:
        return await store.find_all()
    except StorageError:
        logger.exception("GET /admin/uploads failed")
        return []


@router.get("/uploads/{listing_id}", response_model=dict)
async def get_upload(listing_id: str, store: PropertyStore = Depends(get_store)):
    record = await store.find_by_id(listing_id)
    if record is None:
        raise ListingNotFound(listing_id)
    return record


# ─── Create ───────────────────────────────────────────────────────────────────

@router.post("/upload-property", response_model=ListingCreated, status_code=201)
@router.post("/uploads", response_model=ListingCreated, status_code=201)
@limiter.limit(settings.upload_rate_limit)
async def create_listing(
    request: Request,
    service: ListingService = Depends(get_listing_service),
):
    form = await request.form()
    fields = _parse_fields(form)
    uploads, links = await _collect_media(form)

    record = await service.create_listing(fields, uploads, links)
    return ListingCreated(id=record["id"], property=record)


# ─── Update ───────────────────────────────────────────────────────────────────

@router.put("/uploads/{listing_id}", response_model=ListingUpdated)
@limiter.limit(settings.upload_rate_limit)
async def update_listing(
    listing_id: str,
    request: Request,
    service: ListingService = Depends(get_listing_service),
):
    form = await request.form()
    fields = _parse_fields(form)
    uploads, links = await _collect_media(form)

    record = await service.update_listing(
        listing_id,
        fields,
        uploads,
        links,
        remove_images=parse_reference_list(form.getlist("removeImages")),
        remove_videos=parse_reference_list(form.getlist("removeVideos")),
    )
    return ListingUpdated(property=record)


# ─── Delete ───────────────────────────────────────────────────────────────────

@router.delete("/delete-property/{listing_id}", response_model=ListingDeleted)
@router.delete("/delete/{listing_id}", response_model=ListingDeleted)
async def delete_listing(
    listing_id: str,
    service: ListingService = Depends(get_listing_service),
):
    await service.delete_listing(listing_id)
    return ListingDeleted()
