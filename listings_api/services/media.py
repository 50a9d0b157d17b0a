"""
Media store: uploaded images and videos on local disk.

Layout under the upload root:
  images/{timestamp}-{original name}
  videos/{timestamp}-{original name}

A stored file is referenced by its public URL path
(``/uploads/images/1712345678901-front.jpg``), optionally prefixed with the
configured public base URL. ``resolve`` maps a reference back to disk; links
to other hosts (YouTube, CDN) never resolve and are left alone on delete.
"""
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import urlsplit

from listings_api.core.errors import ListingValidationError

logger = logging.getLogger(__name__)

IMAGES = "images"
VIDEOS = "videos"

_ALLOWED: dict[str, frozenset[str]] = {
    IMAGES: frozenset({"jpg", "jpeg", "png", "webp", "gif", "heic"}),
    VIDEOS: frozenset({"mp4", "mov", "webm", "mkv", "avi", "m4v"}),
}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class UploadedMedia:
    category: str           # IMAGES or VIDEOS
    filename: str           # client-supplied name, used only for the extension/suffix
    content: bytes


def safe_filename(original_name: str) -> str:
    """
    Strip directories and anything outside ``[A-Za-z0-9._-]``.

    The extension survives even when nothing of the stem does
    (``घर.jpg`` becomes ``upload.jpg``).
    """
    name = PurePosixPath(PurePosixPath(original_name.replace("\\", "/")).name)
    stem = _UNSAFE_CHARS.sub("_", name.stem).strip("._")
    suffix = _UNSAFE_CHARS.sub("", name.suffix).rstrip(".")
    return (stem or "upload") + suffix


def validate_upload(upload: UploadedMedia, max_size: int) -> None:
    """Raise ListingValidationError for an unknown category, extension or oversize file."""
    allowed = _ALLOWED.get(upload.category)
    if allowed is None:
        raise ListingValidationError(f"Unknown media category '{upload.category}'")

    ext = Path(upload.filename).suffix.lstrip(".").lower()
    if ext not in allowed:
        raise ListingValidationError(
            f"File type '.{ext}' is not allowed for {upload.category}. "
            f"Allowed: {', '.join(sorted(allowed))}"
        )
    if len(upload.content) > max_size:
        raise ListingValidationError(
            f"File too large: {upload.filename} (max {max_size // 1024 // 1024} MB)"
        )


class MediaStore:
    def __init__(self, root: Path | str, url_prefix: str = "/uploads", base_url: str = ""):
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")
        self.base_url = base_url.rstrip("/")

    def ensure_dirs(self) -> None:
        for category in _ALLOWED:
            (self.root / category).mkdir(parents=True, exist_ok=True)

    def save(self, category: str, original_name: str, content: bytes) -> str:
        """Write ``content`` and return its reference. I/O errors propagate."""
        dir_path = self.root / category
        dir_path.mkdir(parents=True, exist_ok=True)

        name = safe_filename(original_name)
        stamp = time.time_ns() // 1_000_000
        while True:
            stored_name = f"{stamp}-{name}"
            try:
                # "xb" fails instead of overwriting a file saved in the same millisecond
                with open(dir_path / stored_name, "xb") as fh:
                    fh.write(content)
                break
            except FileExistsError:
                stamp += 1

        logger.debug("Saved %s/%s (%d bytes)", category, stored_name, len(content))
        return f"{self.base_url}{self.url_prefix}/{category}/{stored_name}"

    def resolve(self, reference: str) -> Path | None:
        """Return the on-disk path for a local reference, else None."""
        if not reference:
            return None

        parts = urlsplit(reference)
        path = parts.path
        if parts.scheme or parts.netloc:
            base = urlsplit(self.base_url) if self.base_url else None
            if base is None or (parts.scheme, parts.netloc) != (base.scheme, base.netloc):
                return None
            if base.path and path.startswith(base.path):
                path = path[len(base.path):]

        prefix = self.url_prefix + "/"
        if not path.startswith(prefix):
            return None

        root = self.root.resolve()
        candidate = (root / path[len(prefix):]).resolve()
        if candidate == root or root not in candidate.parents:
            return None
        return candidate

    def is_local(self, reference: str) -> bool:
        return self.resolve(reference) is not None

    def delete(self, reference: str) -> bool:
        """Best-effort removal. Returns True only if a file was actually deleted."""
        path = self.resolve(reference)
        if path is None:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("Failed to delete %s: %s", path, exc)
            return False
        logger.info("Deleted media file %s", path.name)
        return True
