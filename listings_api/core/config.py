import logging
import sys

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ─── App ──────────────────────────────────────
    environment: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    api_log_level: str = "info"
    domain: str = "localhost"
    cors_origins: list[str] = ["*"]

    # ─── Listing storage ──────────────────────────
    storage_backend: str = "json"  # json | mongo
    data_file: str = "data/properties.json"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "estates"
    mongodb_collection: str = "properties"

    # ─── Media storage ────────────────────────────
    upload_dir: str = "public/uploads"
    uploads_url_prefix: str = "/uploads"
    media_base_url: str = ""
    max_upload_size: int = 20 * 1024 * 1024
    max_images: int = 20
    max_videos: int = 10

    # ─── Admin ────────────────────────────────────
    admin_pass: str = "CHANGE_ME"
    admin_page: str = "public/admin/property-upload.html"

    # ─── Sitemap ──────────────────────────────────
    site_url: str = "http://localhost:3000"
    sitemap_pages: list[str] = ["", "about.html", "contact.html", "properties.html"]

    # ─── Seller submissions ───────────────────────
    sellers_dir: str = "sellers_data"

    # ─── Rate limiting ────────────────────────────
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    upload_rate_limit: str = "30/minute"

    # Look for .env in current dir (Docker) or parent dir (local dev)
    model_config = {"env_file": [".env", "../.env"], "extra": "ignore"}


def _validate_secrets(s: Settings) -> None:
    """Abort startup if the admin secret is missing or insecure."""
    errors: list[str] = []

    if s.admin_pass in ("CHANGE_ME", "", "admin"):
        errors.append("ADMIN_PASS is not set or uses the default placeholder")
    elif len(s.admin_pass) < 8:
        errors.append("ADMIN_PASS is too short (minimum 8 characters)")

    if s.storage_backend not in ("json", "mongo"):
        errors.append(f"STORAGE_BACKEND must be 'json' or 'mongo', got '{s.storage_backend}'")

    if errors:
        if s.environment == "production":
            print("FATAL: Invalid configuration:", file=sys.stderr)
            for e in errors:
                print(f"  - {e}", file=sys.stderr)
            sys.exit(1)
        else:
            # Warn loudly in development but allow startup
            log = logging.getLogger("listings_api.config")
            for e in errors:
                log.warning("CONFIG VALIDATION WARNING: %s", e)


settings = Settings()
_validate_secrets(settings)
