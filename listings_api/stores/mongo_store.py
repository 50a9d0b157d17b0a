"""
Database backend: one MongoDB collection via motor.

Documents keep MongoDB's ObjectId ``_id``; callers only ever see it as the
string ``id``. ``createdAt``/``updatedAt`` are maintained here, and listings
come back newest first.
"""
import logging
from datetime import datetime, timezone

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from listings_api.core.errors import ListingValidationError, StorageError
from listings_api.stores.base import PropertyStore

logger = logging.getLogger(__name__)


def _id_filter(listing_id: str) -> dict:
    """Match on ObjectId when the id looks like one, else on the raw string."""
    if ObjectId.is_valid(listing_id):
        return {"_id": ObjectId(listing_id)}
    return {"_id": listing_id}


def to_record(doc: dict) -> dict:
    record = {k: v for k, v in doc.items() if k != "_id"}
    record["id"] = str(doc["_id"])
    return record


class MongoPropertyStore(PropertyStore):
    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        client: AsyncIOMotorClient | None = None,
    ):
        self.collection = collection
        self._client = client

    @classmethod
    def from_uri(cls, uri: str, db_name: str, collection_name: str) -> "MongoPropertyStore":
        client = AsyncIOMotorClient(uri)
        return cls(client[db_name][collection_name], client=client)

    async def create(self, record: dict) -> dict:
        doc = {k: v for k, v in record.items() if k != "id"}
        listing_id = record.get("id")
        doc["_id"] = _id_filter(str(listing_id))["_id"] if listing_id else ObjectId()
        now = datetime.now(timezone.utc)
        doc["createdAt"] = now
        doc["updatedAt"] = now
        try:
            await self.collection.insert_one(doc)
        except DuplicateKeyError as exc:
            raise ListingValidationError(f"Property id '{listing_id}' already exists") from exc
        except PyMongoError as exc:
            logger.error("MongoDB insert failed: %s", exc)
            raise StorageError(f"Insert failed: {exc}") from exc
        return to_record(doc)

    async def find_all(self, filters: dict | None = None) -> list[dict]:
        try:
            cursor = self.collection.find(dict(filters or {})).sort("createdAt", DESCENDING)
            return [to_record(doc) async for doc in cursor]
        except PyMongoError as exc:
            logger.error("MongoDB query failed: %s", exc)
            raise StorageError(f"Query failed: {exc}") from exc

    async def find_by_id(self, listing_id: str) -> dict | None:
        try:
            doc = await self.collection.find_one(_id_filter(listing_id))
        except PyMongoError as exc:
            logger.error("MongoDB query failed: %s", exc)
            raise StorageError(f"Query failed: {exc}") from exc
        return to_record(doc) if doc else None

    async def update(self, listing_id: str, fields: dict) -> dict | None:
        changes = {k: v for k, v in fields.items() if k not in ("id", "_id", "createdAt")}
        changes["updatedAt"] = datetime.now(timezone.utc)
        try:
            doc = await self.collection.find_one_and_update(
                _id_filter(listing_id),
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            logger.error("MongoDB update failed: %s", exc)
            raise StorageError(f"Update failed: {exc}") from exc
        return to_record(doc) if doc else None

    async def delete(self, listing_id: str) -> bool:
        try:
            result = await self.collection.delete_one(_id_filter(listing_id))
        except PyMongoError as exc:
            logger.error("MongoDB delete failed: %s", exc)
            raise StorageError(f"Delete failed: {exc}") from exc
        return result.deleted_count == 1

    async def ping(self) -> None:
        try:
            await self.collection.database.command("ping")
        except PyMongoError as exc:
            logger.warning("MongoDB ping failed: %s", exc)
            raise StorageError(f"MongoDB unreachable: {exc}") from exc

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
