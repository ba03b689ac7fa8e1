"""Key-value stores backing verification codes and uploaded files."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol

from pymongo.collection import Collection
from pymongo.errors import DocumentTooLarge, WriteError

from panchayat_api.errors import StorageQuotaError

logger = logging.getLogger(__name__)

# MongoDB error code for "object to insert too large".
_MONGO_OBJECT_TOO_LARGE = 10334


def entry_size(key: str, value: str) -> int:
    """Return the number of bytes an entry occupies in a store."""
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class KeyValueStore(Protocol):
    """String-to-string storage used by the OTP and file services."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...

    def keys(self) -> List[str]:
        ...


class MemoryKeyValueStore:
    """Process-local store, optionally bounded by an aggregate byte quota."""

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(
                entry_size(k, v) for k, v in self._data.items() if k != key
            )
            if used + entry_size(key, value) > self.quota_bytes:
                raise StorageQuotaError()
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())


class MongoKeyValueStore:
    """Store entries as ``{_id: key, value: str}`` documents in a collection."""

    def __init__(self, collection: Collection) -> None:
        self.collection = collection

    def get(self, key: str) -> Optional[str]:
        document = self.collection.find_one({"_id": key})
        if document is None:
            return None
        value = document.get("value")
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        try:
            self.collection.replace_one({"_id": key}, {"_id": key, "value": value}, upsert=True)
        except DocumentTooLarge as exc:
            raise StorageQuotaError() from exc
        except WriteError as exc:
            if exc.code == _MONGO_OBJECT_TOO_LARGE:
                raise StorageQuotaError() from exc
            raise

    def remove(self, key: str) -> None:
        self.collection.delete_one({"_id": key})

    def keys(self) -> List[str]:
        return [document["_id"] for document in self.collection.find({}, {"_id": 1})]
