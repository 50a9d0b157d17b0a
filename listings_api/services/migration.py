"""
Startup normalization of listings written by older versions.

``upgrade_record`` is pure: it returns a normalized copy and never touches
storage. ``run_migration`` maps it over the JSON file and writes back only
when at least one record changed, so running it again is a no-op.
"""
import copy
import logging

from listings_api.models.property import DEFAULT_LISTING_TYPE
from listings_api.stores.json_store import JsonPropertyStore

logger = logging.getLogger(__name__)


def _images_from_legacy_image(record: dict) -> None:
    # v1 stored a single "image" string
    if "image" in record:
        legacy = record.pop("image")
        if not record.get("images") and legacy:
            record["images"] = [legacy]


def _media_fields_as_lists(record: dict) -> None:
    for key in ("images", "videos"):
        value = record.get(key)
        if isinstance(value, list):
            continue
        record[key] = [value] if value else []


def _default_type(record: dict) -> None:
    if not record.get("type"):
        record["type"] = DEFAULT_LISTING_TYPE


# Applied in order; each step mutates the working copy in place.
UPGRADE_STEPS = (
    _images_from_legacy_image,
    _media_fields_as_lists,
    _default_type,
)


def upgrade_record(record: dict) -> dict:
    upgraded = copy.deepcopy(record)
    for step in UPGRADE_STEPS:
        step(upgraded)
    return upgraded


def migrate_records(records: list[dict]) -> tuple[list[dict], bool]:
    """Returns (normalized records, whether anything changed)."""
    upgraded = [upgrade_record(r) for r in records]
    return upgraded, upgraded != records


def run_migration(store: JsonPropertyStore) -> bool:
    records, changed = migrate_records(store.read_all())
    if changed:
        logger.info("Migration: updating %s to the current format...", store.path.name)
        store.write_all(records)
    else:
        logger.info("Migration: no changes required.")
    return changed
