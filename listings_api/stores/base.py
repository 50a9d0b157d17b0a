from abc import ABC, abstractmethod


class PropertyStore(ABC):
    """Storage contract shared by the JSON-file and MongoDB backends.

    Records are plain dicts with a string ``id``. Backend failures surface as
    ``StorageError``.
    """

    @abstractmethod
    async def create(self, record: dict) -> dict:
        """Persist a new record, assigning ``id`` when absent."""

    @abstractmethod
    async def find_all(self, filters: dict | None = None) -> list[dict]:
        """Records whose fields equal every value in ``filters``."""

    @abstractmethod
    async def find_by_id(self, listing_id: str) -> dict | None:
        ...

    @abstractmethod
    async def update(self, listing_id: str, fields: dict) -> dict | None:
        """Overwrite only ``fields``; returns the updated record or None."""

    @abstractmethod
    async def delete(self, listing_id: str) -> bool:
        ...

    @abstractmethod
    async def ping(self) -> None:
        ...

    async def close(self) -> None:
        return None


def matches(record: dict, filters: dict | None) -> bool:
    if not filters:
        return True
    return all(record.get(key) == value for key, value in filters.items())
