"""
One-time normalization of the JSON listing file, outside the API process.

The API runs the same pass at startup; this script is for fixing up a file
before deploying, or for checking what would change:

    python -m listings_api.scripts.migrate_listings            # rewrite if needed
    python -m listings_api.scripts.migrate_listings --dry-run  # report only

Safe to re-run: an already-normalized file is left untouched.
"""
import argparse
import logging
import sys

from listings_api.core.config import settings
from listings_api.core.errors import StorageError
from listings_api.services.migration import migrate_records, run_migration
from listings_api.stores.json_store import JsonPropertyStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger("migrate_listings")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--file", default=settings.data_file, help="listing JSON file")
    parser.add_argument("--dry-run", action="store_true", help="report without writing")
    args = parser.parse_args(argv)

    store = JsonPropertyStore(args.file)
    try:
        if args.dry_run:
            before = store.read_all()
            after, _ = migrate_records(before)
            n_changed = sum(1 for old, new in zip(before, after) if old != new)
            logger.info("%d of %d records would change", n_changed, len(before))
        else:
            run_migration(store)
    except StorageError as exc:
        logger.error("Migration failed: %s", exc.detail)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
