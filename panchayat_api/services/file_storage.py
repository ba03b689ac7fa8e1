"""Document store for application attachments kept in a key-value store.

Each uploaded file becomes one entry keyed by a generated identifier
(``file_<millis>_<base36>``). The value is a JSON object holding the file's
metadata and its full contents as a base64 ``data:`` URI.

Reads never raise for missing or damaged entries. They go through
``FileStore.lookup`` which reports one of four states (found, not_found,
invalid_id, corrupted) so callers can decide whether offering a retry makes
sense.
"""

from __future__ import annotations

import enum
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from panchayat_api import config
from panchayat_api.errors import (
    FileDownloadError,
    FileTooLargeError,
    StorageVerificationError,
)
from panchayat_api.storage import KeyValueStore, entry_size
from panchayat_api.utils.data_uri import decode_data_uri, encode_data_uri
from panchayat_api.utils.tokens import generate_file_id, now_millis

logger = logging.getLogger(__name__)

FILE_ID_PATTERN = re.compile(r"file_[0-9]+_[a-z0-9]+")
MILLIS_PER_HOUR = 60 * 60 * 1000


def is_valid_identifier(value: Any) -> bool:
    """Return True if ``value`` has the shape of a generated file identifier."""
    if not isinstance(value, str) or not value:
        return False
    if value in ("undefined", "null"):
        return False
    return FILE_ID_PATTERN.fullmatch(value) is not None


class FileStatus(str, enum.Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    INVALID_ID = "invalid_id"
    CORRUPTED = "corrupted"


@dataclass(frozen=True)
class FileRecord:
    """A stored file as it lives in the key-value store."""

    name: str
    data: str
    url: str
    size: int = 0
    type: str = ""
    uploaded_at: Optional[int] = None

    def to_json(self) -> str:
        return json.dumps(
            {
                "name": self.name,
                "size": self.size,
                "type": self.type,
                "url": self.url,
                "uploadedAt": self.uploaded_at,
                "data": self.data,
            }
        )

    @classmethod
    def from_json(cls, raw: str, url: str) -> Optional["FileRecord"]:
        """Parse a stored value, returning None when it is not a usable record."""
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None

        name = data.get("name")
        payload = data.get("data")
        if not isinstance(name, str) or not name:
            return None
        if not isinstance(payload, str) or not payload:
            return None

        size = data.get("size")
        if isinstance(size, bool) or not isinstance(size, int):
            size = 0
        mime_type = data.get("type")
        uploaded_at = data.get("uploadedAt")
        if isinstance(uploaded_at, bool) or not isinstance(uploaded_at, int):
            uploaded_at = None

        return cls(
            name=name,
            data=payload,
            url=url,
            size=size,
            type=mime_type if isinstance(mime_type, str) else "",
            uploaded_at=uploaded_at,
        )

    def metadata(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size,
            "type": self.type,
            "url": self.url,
            "uploadedAt": self.uploaded_at,
        }

    def content(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "data": self.data,
            "type": self.type,
            "size": self.size,
        }


@dataclass(frozen=True)
class FileLookup:
    status: FileStatus
    record: Optional[FileRecord] = None

    @property
    def found(self) -> bool:
        return self.status is FileStatus.FOUND

    @property
    def retryable(self) -> bool:
        # Only a missing file is worth retrying.
        return self.status is FileStatus.NOT_FOUND


class FileStore:
    """Store, read and expire uploaded files in a ``KeyValueStore``."""

    def __init__(
        self,
        store: KeyValueStore,
        max_record_bytes: int = config.MAX_FILE_RECORD_BYTES,
        quota_bytes: int = config.STORAGE_QUOTA_BYTES,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self.store = store
        self.max_record_bytes = max_record_bytes
        self.quota_bytes = quota_bytes
        self.clock = clock

    def store_file(self, name: str, mime_type: str, raw_bytes: bytes) -> Dict[str, Any]:
        """Persist a file and return its metadata (without the payload).

        Raises FileTooLargeError if the serialized record exceeds the per-file
        cap, StorageQuotaError if the store refuses the write and
        StorageVerificationError if the entry cannot be read back.
        """
        uploaded_at = self.clock()
        file_id = generate_file_id(uploaded_at)
        record = FileRecord(
            name=name,
            data=encode_data_uri(raw_bytes, mime_type),
            url=file_id,
            size=len(raw_bytes),
            type=mime_type or "",
            uploaded_at=uploaded_at,
        )
        serialized = record.to_json()

        record_size = len(serialized.encode("utf-8"))
        if record_size > self.max_record_bytes:
            raise FileTooLargeError(record_size, self.max_record_bytes)

        self.store.set(file_id, serialized)

        if self.store.get(file_id) != serialized:
            self.store.remove(file_id)
            raise StorageVerificationError(file_id)

        logger.info("Stored file %s (%d bytes) as %s", name, record.size, file_id)
        return record.metadata()

    def lookup(self, identifier: Any) -> FileLookup:
        """Resolve ``identifier`` to a tagged result without raising."""
        if not is_valid_identifier(identifier):
            return FileLookup(FileStatus.INVALID_ID)

        try:
            raw = self.store.get(identifier)
        except Exception:
            logger.warning("Failed to read file %s from storage", identifier, exc_info=True)
            return FileLookup(FileStatus.NOT_FOUND)

        if raw is None:
            return FileLookup(FileStatus.NOT_FOUND)

        record = FileRecord.from_json(raw, identifier)
        if record is None:
            return FileLookup(FileStatus.CORRUPTED)
        return FileLookup(FileStatus.FOUND, record)

    def retrieve(self, identifier: Any) -> Optional[Dict[str, Any]]:
        result = self.lookup(identifier)
        return result.record.content() if result.found else None

    def exists(self, identifier: Any) -> bool:
        return self.lookup(identifier).found

    def metadata(self, identifier: Any) -> Optional[Dict[str, Any]]:
        result = self.lookup(identifier)
        return result.record.metadata() if result.found else None

    def list_metadata(self) -> List[Dict[str, Any]]:
        """Return metadata for every readable file, newest first."""
        files = []
        for key in self.store.keys():
            if not is_valid_identifier(key):
                continue
            result = self.lookup(key)
            if result.found:
                files.append(result.record.metadata())
        files.sort(key=lambda f: f["uploadedAt"] or 0, reverse=True)
        return files

    def download(self, identifier: Any) -> Tuple[bytes, str, str]:
        """Return ``(raw_bytes, filename, mime_type)`` for saving to disk."""
        if not is_valid_identifier(identifier):
            raise FileDownloadError(
                "Invalid file identifier.",
                identifier if isinstance(identifier, str) else None,
                reason=FileStatus.INVALID_ID.value,
            )

        result = self.lookup(identifier)
        if result.status is FileStatus.NOT_FOUND:
            raise FileDownloadError(
                "File not found. It may have been removed from storage.",
                identifier,
                reason=FileStatus.NOT_FOUND.value,
            )
        if result.status is FileStatus.CORRUPTED:
            raise FileDownloadError(
                "File data is missing or corrupted.", identifier, reason=FileStatus.CORRUPTED.value
            )

        record = result.record
        try:
            encoded_type, raw_bytes = decode_data_uri(record.data)
        except ValueError as exc:
            raise FileDownloadError(
                "File data is missing or corrupted.", identifier, reason=FileStatus.CORRUPTED.value
            ) from exc

        return raw_bytes, record.name, record.type or encoded_type

    def cleanup(self, max_age_hours: float) -> int:
        """Remove file entries older than ``max_age_hours``.

        An entry exactly ``max_age_hours`` old is kept. Entries that cannot be
        parsed, or carry no upload time, are removed regardless of age. Keys
        that are not file identifiers are never touched.
        """
        cutoff = self.clock() - max_age_hours * MILLIS_PER_HOUR
        removed = 0

        for key in self.store.keys():
            if not is_valid_identifier(key):
                continue
            try:
                raw = self.store.get(key)
                if raw is None:
                    continue
                record = FileRecord.from_json(raw, key)
                if record is None or record.uploaded_at is None or record.uploaded_at < cutoff:
                    self.store.remove(key)
                    removed += 1
            except Exception:
                logger.warning("Skipping file %s during cleanup", key, exc_info=True)

        if removed:
            logger.info("Cleanup removed %d stored file(s)", removed)
        return removed

    def usage_info(self) -> Dict[str, int]:
        """Report bytes used by every entry in the store against the quota."""
        used = 0
        files = 0
        for key in self.store.keys():
            value = self.store.get(key)
            if value is None:
                continue
            used += entry_size(key, value)
            if is_valid_identifier(key):
                files += 1

        return {
            "used": used,
            "available": max(0, self.quota_bytes - used),
            "files": files,
        }
