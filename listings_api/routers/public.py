import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response
from pydantic import ValidationError

from listings_api.core.config import settings
from listings_api.core.deps import get_store
from listings_api.core.errors import ListingValidationError, StorageError
from listings_api.schemas.property import SellerSubmission
from listings_api.services.sellers import save_submission
from listings_api.services.sitemap import build_sitemap
from listings_api.stores.base import PropertyStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["public"])


# ─── Listings ─────────────────────────────────────────────────────────────────
# Failures return [] so the site can always render an empty grid.

@router.get("/api/properties", response_model=list[dict])
async def list_properties(
    type: str | None = None,
    category: str | None = None,
    store: PropertyStore = Depends(get_store),
):
    filters = {}
    if type:
        filters["type"] = type
    if category:
        filters["category"] = category
    try:
        return await store.find_all(filters)
    except StorageError:
        logger.exception("GET /api/properties failed")
        return []


@router.get("/properties/{listing_type}", response_model=list[dict])
async def list_properties_by_type(listing_type: str, store: PropertyStore = Depends(get_store)):
    try:
        return await store.find_all({"type": listing_type})
    except StorageError:
        logger.exception("GET /properties/%s failed", listing_type)
        return []


# ─── Sitemap ──────────────────────────────────────────────────────────────────

@router.get("/sitemap.xml", include_in_schema=False)
async def sitemap(store: PropertyStore = Depends(get_store)):
    try:
        records = await store.find_all()
    except StorageError:
        logger.exception("Sitemap generation failed")
        return PlainTextResponse("Error generating sitemap", status_code=500)

    xml = build_sitemap(settings.site_url, settings.sitemap_pages, [r["id"] for r in records])
    return Response(content=xml, media_type="application/xml")


# ─── Seller enquiries ─────────────────────────────────────────────────────────

@router.post("/api/sellers/submit")
async def submit_seller(request: Request):
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            data = await request.json()
        except ValueError as exc:
            raise ListingValidationError("Request body is not valid JSON") from exc
    else:
        data = {k: v for k, v in (await request.form()).items() if isinstance(v, str)}

    try:
        submission = SellerSubmission.model_validate(data)
    except ValidationError as exc:
        raise ListingValidationError("Name, phone, and address are required") from exc

    save_submission(settings.sellers_dir, submission)
    return {"success": True, "message": "Form submitted successfully"}
