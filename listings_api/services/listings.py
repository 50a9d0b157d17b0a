"""
Listing lifecycle: create, update and delete across media and record storage.

Reads do not go through here; routers query the store directly.

Media policy on create: at least one medium is required, i.e. one uploaded
image, one uploaded video, or one external video link.
"""
import json
import logging

from pydantic import ValidationError

from listings_api.core.errors import ListingNotFound, ListingValidationError, StorageError
from listings_api.models.property import PropertyRecord
from listings_api.services.media import IMAGES, VIDEOS, MediaStore, UploadedMedia, validate_upload
from listings_api.stores.base import PropertyStore

logger = logging.getLogger(__name__)

_MEDIA_FIELDS = ("id", "images", "videos")


def parse_reference_list(raw) -> list[str]:
    """
    Normalize a removeImages/removeVideos payload into a list of references.

    Accepts a list of strings, a JSON array, a single JSON string, or a
    comma-separated string. Anything that is not valid JSON is treated as
    comma-separated.
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        refs: list[str] = []
        for item in raw:
            refs.extend(parse_reference_list(item))
        return refs
    if not isinstance(raw, str):
        return [str(raw)]

    text = raw.strip()
    if not text:
        return []
    try:
        parsed = json.loads(text)
    except ValueError:
        return [part.strip() for part in text.split(",") if part.strip()]
    if isinstance(parsed, list):
        return [str(p).strip() for p in parsed if str(p).strip()]
    if isinstance(parsed, str):
        return [parsed.strip()] if parsed.strip() else []
    return [text]


def _as_list(value) -> list:
    if isinstance(value, list):
        return list(value)
    return [value] if value else []


class ListingService:
    def __init__(
        self,
        store: PropertyStore,
        media: MediaStore,
        max_images: int = 20,
        max_videos: int = 10,
        max_upload_size: int = 20 * 1024 * 1024,
    ):
        self.store = store
        self.media = media
        self.max_images = max_images
        self.max_videos = max_videos
        self.max_upload_size = max_upload_size

    # ── Helpers ───────────────────────────────────────────────────────────

    def _validate_uploads(self, uploads: list[UploadedMedia]) -> None:
        n_images = sum(1 for u in uploads if u.category == IMAGES)
        n_videos = sum(1 for u in uploads if u.category == VIDEOS)
        if n_images > self.max_images:
            raise ListingValidationError(f"Too many images (max {self.max_images})")
        if n_videos > self.max_videos:
            raise ListingValidationError(f"Too many videos (max {self.max_videos})")
        for upload in uploads:
            validate_upload(upload, self.max_upload_size)

    def _save_uploads(self, uploads: list[UploadedMedia]) -> dict[str, list[str]]:
        """Save every upload, or none: a failure removes what was already written."""
        saved: dict[str, list[str]] = {IMAGES: [], VIDEOS: []}
        try:
            for upload in uploads:
                saved[upload.category].append(
                    self.media.save(upload.category, upload.filename, upload.content)
                )
        except OSError as exc:
            self._discard(saved[IMAGES] + saved[VIDEOS])
            raise StorageError(f"Could not store uploaded file: {exc}") from exc
        return saved

    def _external_links(self, links: list[str] | None) -> list[str]:
        """Drop blanks; a link that points into the upload root is rejected."""
        links = [link for link in (links or []) if link]
        for link in links:
            if self.media.is_local(link):
                raise ListingValidationError(
                    f"Video link must be an external URL, not an uploaded file: {link}"
                )
        return links

    def _discard(self, references: list[str]) -> None:
        for ref in references:
            self.media.delete(ref)

    # ── Create ────────────────────────────────────────────────────────────

    async def create_listing(
        self,
        fields: dict,
        uploads: list[UploadedMedia] | None = None,
        video_links: list[str] | None = None,
    ) -> dict:
        uploads = uploads or []
        video_links = self._external_links(video_links)

        if not uploads and not video_links:
            raise ListingValidationError("At least one image or video is required")
        self._validate_uploads(uploads)

        scalar = {k: v for k, v in fields.items() if k not in _MEDIA_FIELDS and v is not None}
        try:
            record = PropertyRecord(**scalar)
        except ValidationError as exc:
            raise ListingValidationError(str(exc)) from exc

        saved = self._save_uploads(uploads)
        record.images = saved[IMAGES]
        record.videos = saved[VIDEOS] + video_links

        try:
            created = await self.store.create(record.to_document())
        except Exception:
            # Nothing was persisted; do not leave the files behind
            self._discard(saved[IMAGES] + saved[VIDEOS])
            raise

        logger.info(
            "Created property %s (%d images, %d videos)",
            created["id"], len(created["images"]), len(created["videos"]),
        )
        return created

    # ── Update ────────────────────────────────────────────────────────────

    async def update_listing(
        self,
        listing_id: str,
        fields: dict,
        uploads: list[UploadedMedia] | None = None,
        video_links: list[str] | None = None,
        remove_images: list[str] | None = None,
        remove_videos: list[str] | None = None,
    ) -> dict:
        existing = await self.store.find_by_id(listing_id)
        if existing is None:
            raise ListingNotFound(listing_id)

        uploads = uploads or []
        video_links = self._external_links(video_links)
        self._validate_uploads(uploads)

        changes = {k: v for k, v in fields.items() if k not in _MEDIA_FIELDS and v is not None}
        try:
            changes = PropertyRecord(**changes).model_dump(mode="json", include=set(changes))
        except ValidationError as exc:
            raise ListingValidationError(str(exc)) from exc

        remove_images = set(remove_images or [])
        remove_videos = set(remove_videos or [])
        current_images = _as_list(existing.get("images"))
        current_videos = _as_list(existing.get("videos"))

        # Only references that are actually on this listing get their files deleted
        dropped = [r for r in current_images if r in remove_images]
        dropped += [r for r in current_videos if r in remove_videos]

        saved = self._save_uploads(uploads)
        if uploads or remove_images or remove_videos or video_links:
            changes["images"] = [r for r in current_images if r not in remove_images] + saved[IMAGES]
            changes["videos"] = (
                [r for r in current_videos if r not in remove_videos]
                + saved[VIDEOS]
                + video_links
            )

        try:
            updated = await self.store.update(listing_id, changes)
        except Exception:
            self._discard(saved[IMAGES] + saved[VIDEOS])
            raise
        if updated is None:
            # Deleted by another request in the meantime
            self._discard(saved[IMAGES] + saved[VIDEOS])
            raise ListingNotFound(listing_id)

        for ref in dropped:
            self.media.delete(ref)

        logger.info(
            "Updated property %s (fields=%s, +%d media, -%d media)",
            listing_id,
            sorted(k for k in changes if k not in _MEDIA_FIELDS),
            len(saved[IMAGES]) + len(saved[VIDEOS]),
            len(dropped),
        )
        return updated

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete_listing(self, listing_id: str) -> None:
        existing = await self.store.find_by_id(listing_id)
        if existing is None:
            raise ListingNotFound(listing_id)

        removed = 0
        for ref in _as_list(existing.get("images")) + _as_list(existing.get("videos")):
            # MediaStore.delete logs and swallows its own failures
            if self.media.delete(ref):
                removed += 1

        if not await self.store.delete(listing_id):
            raise ListingNotFound(listing_id)
        logger.info("Deleted property %s (%d media files removed)", listing_id, removed)
