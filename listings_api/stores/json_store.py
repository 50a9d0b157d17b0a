"""
File backend: the whole listing collection lives in one JSON array.

Every mutation is a full read-modify-write of the file. The write goes to a
temporary file in the same directory and is moved over the original with
``os.replace``, so readers see either the previous or the new collection,
never a partial one. Two requests mutating concurrently can still lose an
update (last writer wins).
"""
import json
import logging
import os
import tempfile
import uuid
from pathlib import Path

from listings_api.core.errors import ListingValidationError, StorageError
from listings_api.stores.base import PropertyStore, matches

logger = logging.getLogger(__name__)


class JsonPropertyStore(PropertyStore):
    def __init__(self, path: Path | str):
        self.path = Path(path)

    # ── Raw file access ────────────────────────────────────────────────────

    def read_all(self) -> list[dict]:
        """Load the collection, creating an empty file on first use."""
        if not self.path.exists():
            self.write_all([])
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Cannot read {self.path.name}: {exc}") from exc

        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise StorageError(f"{self.path.name} is not valid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise StorageError(f"{self.path.name} must hold a JSON array")
        return data

    def write_all(self, records: list[dict]) -> None:
        payload = json.dumps(records, indent=2, ensure_ascii=False)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Cannot write {self.path.name}: {exc}") from exc

    # ── PropertyStore ──────────────────────────────────────────────────────

    async def create(self, record: dict) -> dict:
        records = self.read_all()
        record = dict(record)
        listing_id = record.get("id")
        if listing_id is None:
            listing_id = uuid.uuid4().hex
        listing_id = str(listing_id)
        if any(str(r.get("id")) == listing_id for r in records):
            raise ListingValidationError(f"Property id '{listing_id}' already exists")

        record["id"] = listing_id
        records.append(record)
        self.write_all(records)
        return record

    async def find_all(self, filters: dict | None = None) -> list[dict]:
        return [r for r in self.read_all() if matches(r, filters)]

    async def find_by_id(self, listing_id: str) -> dict | None:
        for record in self.read_all():
            if str(record.get("id")) == listing_id:
                return record
        return None

    async def update(self, listing_id: str, fields: dict) -> dict | None:
        records = self.read_all()
        for record in records:
            if str(record.get("id")) == listing_id:
                record.update({k: v for k, v in fields.items() if k != "id"})
                self.write_all(records)
                return record
        return None

    async def delete(self, listing_id: str) -> bool:
        records = self.read_all()
        remaining = [r for r in records if str(r.get("id")) != listing_id]
        if len(remaining) == len(records):
            return False
        self.write_all(remaining)
        return True

    async def ping(self) -> None:
        self.read_all()
