"""Tests for the attachment store."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from panchayat_api.errors import (  # noqa: E402
    FileDownloadError,
    FileTooLargeError,
    StorageQuotaError,
    StorageVerificationError,
)
from panchayat_api.services.file_storage import (  # noqa: E402
    MILLIS_PER_HOUR,
    FileStatus,
    FileStore,
    is_valid_identifier,
)
from panchayat_api.storage import MemoryKeyValueStore, entry_size  # noqa: E402
from panchayat_api.utils.data_uri import decode_data_uri  # noqa: E402

PDF_BYTES = b"%PDF-1.4\n\x00\x01\x02\xff\xfe binary income certificate"


def _file_json(name="old.pdf", uploaded_at=0, data="data:application/pdf;base64,AAAA"):
    return json.dumps(
        {"name": name, "size": 3, "type": "application/pdf", "uploadedAt": uploaded_at, "data": data}
    )


@pytest.mark.parametrize(
    "value",
    [
        "", "undefined", "null", None, 42, "file_", "file_abc_def", "file_123_ABC", "file_123_abc!",
        "x_file_1_a", "otp_a@b.com", "file_\u0661\u0662\u0663_abc", "file_\uff11\uff12_abc",
    ],
)
def test_invalid_identifiers_rejected(value):
    assert is_valid_identifier(value) is False


def test_valid_identifier_accepted():
    assert is_valid_identifier("file_1700000000000_k3j9x0abc") is True


def test_store_and_retrieve_round_trip(file_store, clock):
    stored = file_store.store_file("income.pdf", "application/pdf", PDF_BYTES)

    assert stored == {
        "name": "income.pdf",
        "size": len(PDF_BYTES),
        "type": "application/pdf",
        "url": stored["url"],
        "uploadedAt": clock(),
    }
    assert "data" not in stored
    assert is_valid_identifier(stored["url"])
    assert stored["url"].startswith(f"file_{clock()}_")

    content = file_store.retrieve(stored["url"])
    assert content["name"] == "income.pdf"
    assert content["type"] == "application/pdf"
    assert content["size"] == len(PDF_BYTES)

    mime_type, raw_bytes = decode_data_uri(content["data"])
    assert mime_type == "application/pdf"
    assert raw_bytes == PDF_BYTES


def test_empty_file_round_trip(file_store):
    stored = file_store.store_file("blank.txt", "", b"")

    raw_bytes, filename, mime_type = file_store.download(stored["url"])
    assert raw_bytes == b""
    assert filename == "blank.txt"
    assert mime_type == "application/octet-stream"


def test_exists_and_metadata(file_store):
    stored = file_store.store_file("photo.png", "image/png", b"\x89PNG\r\n")

    assert file_store.exists(stored["url"]) is True
    assert file_store.metadata(stored["url"]) == stored


def test_lookup_states(file_store, memory_store):
    assert file_store.lookup("null").status is FileStatus.INVALID_ID
    assert file_store.lookup("file_1_missing").status is FileStatus.NOT_FOUND

    memory_store.set("file_2_broken", "{not json")
    corrupted = file_store.lookup("file_2_broken")
    assert corrupted.status is FileStatus.CORRUPTED
    assert corrupted.retryable is False

    assert file_store.lookup("file_1_missing").retryable is True


def test_missing_file_degrades_gracefully(file_store):
    assert file_store.retrieve("file_1700000000000_nothere") is None
    assert file_store.exists("file_1700000000000_nothere") is False
    assert file_store.metadata("file_1700000000000_nothere") is None


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        "\"just a string\"",
        json.dumps({"name": "a.pdf"}),
        json.dumps({"data": "data:text/plain;base64,aGk="}),
        json.dumps({"name": "", "data": "data:text/plain;base64,aGk="}),
    ],
)
def test_corrupted_file_degrades_gracefully(file_store, memory_store, raw):
    memory_store.set("file_1700000000000_broken", raw)

    assert file_store.retrieve("file_1700000000000_broken") is None
    assert file_store.exists("file_1700000000000_broken") is False
    assert file_store.metadata("file_1700000000000_broken") is None
    assert file_store.lookup("file_1700000000000_broken").status is FileStatus.CORRUPTED


def test_invalid_identifier_skips_storage_lookup(clock):
    class ExplodingStore(MemoryKeyValueStore):
        def get(self, key):
            raise AssertionError("storage should not be read")

    file_store = FileStore(ExplodingStore(), clock=clock)

    assert file_store.retrieve("undefined") is None
    assert file_store.exists("") is False


def test_storage_read_error_reported_as_not_found(clock):
    class BrokenStore(MemoryKeyValueStore):
        def get(self, key):
            raise OSError("disk unavailable")

    file_store = FileStore(BrokenStore(), clock=clock)

    assert file_store.lookup("file_1_abc").status is FileStatus.NOT_FOUND


def test_oversized_file_rejected_without_partial_write(memory_store, clock):
    file_store = FileStore(memory_store, max_record_bytes=500, clock=clock)

    with pytest.raises(FileTooLargeError) as excinfo:
        file_store.store_file("scan.pdf", "application/pdf", b"x" * 1000)

    assert excinfo.value.details["limit"] == 500
    assert memory_store.keys() == []


def test_default_cap_is_four_and_a_half_megabytes(file_store, memory_store):
    assert file_store.max_record_bytes == 4718592

    with pytest.raises(FileTooLargeError):
        file_store.store_file("huge.bin", "application/octet-stream", b"\0" * (4 * 1024 * 1024))

    assert memory_store.keys() == []


def test_quota_rejection_surfaces_capacity_error(clock):
    store = MemoryKeyValueStore(quota_bytes=400)
    file_store = FileStore(store, clock=clock)

    with pytest.raises(StorageQuotaError):
        file_store.store_file("scan.pdf", "application/pdf", b"x" * 600)

    assert store.keys() == []


def test_write_that_cannot_be_read_back_fails(clock):
    class ForgetfulStore(MemoryKeyValueStore):
        def set(self, key, value):
            super().set(key, value[:-1])

    store = ForgetfulStore()
    file_store = FileStore(store, clock=clock)

    with pytest.raises(StorageVerificationError):
        file_store.store_file("note.txt", "text/plain", b"hello")

    assert store.keys() == []


def test_download_returns_bytes_and_name(file_store):
    stored = file_store.store_file("aadhaar.pdf", "application/pdf", PDF_BYTES)

    assert file_store.download(stored["url"]) == (PDF_BYTES, "aadhaar.pdf", "application/pdf")


def test_download_errors(file_store, memory_store):
    with pytest.raises(FileDownloadError) as invalid:
        file_store.download("undefined")
    assert invalid.value.details["reason"] == "invalid_id"

    with pytest.raises(FileDownloadError) as missing:
        file_store.download("file_1_gone")
    assert missing.value.details["reason"] == "not_found"

    memory_store.set("file_1_nodata", json.dumps({"name": "a.pdf", "data": ""}))
    with pytest.raises(FileDownloadError) as corrupted:
        file_store.download("file_1_nodata")
    assert corrupted.value.details["reason"] == "corrupted"

    memory_store.set("file_1_badb64", _file_json(data="data:application/pdf;base64,@@@@"))
    with pytest.raises(FileDownloadError):
        file_store.download("file_1_badb64")


def test_cleanup_threshold_is_exclusive(file_store, memory_store, clock):
    threshold = 24 * MILLIS_PER_HOUR
    memory_store.set("file_100_exact", _file_json(uploaded_at=clock() - threshold))
    memory_store.set("file_100_older", _file_json(uploaded_at=clock() - threshold - 1000))
    memory_store.set("file_100_fresh", _file_json(uploaded_at=clock()))
    memory_store.set("file_100_corrupt", "{not json")
    memory_store.set("file_100_undated", json.dumps({"name": "a.pdf", "data": "data:,x"}))
    memory_store.set("otp_citizen@example.com", "{not json")
    memory_store.set("theme", "dark")

    removed = file_store.cleanup(24)

    assert removed == 3
    assert sorted(memory_store.keys()) == sorted(
        ["file_100_exact", "file_100_fresh", "otp_citizen@example.com", "theme"]
    )


def test_cleanup_continues_after_record_error(clock):
    class FlakyStore(MemoryKeyValueStore):
        def get(self, key):
            if key == "file_1_flaky":
                raise OSError("read failed")
            return super().get(key)

    store = FlakyStore()
    store.set("file_1_flaky", _file_json())
    store.set("file_2_old", _file_json())
    file_store = FileStore(store, clock=clock)

    assert file_store.cleanup(1) == 1
    assert store.keys() == ["file_1_flaky"]


def test_usage_info(memory_store, clock):
    file_store = FileStore(memory_store, quota_bytes=10_000, clock=clock)
    stored = file_store.store_file("note.txt", "text/plain", b"hello world")
    memory_store.set("otp_citizen@example.com", "{}")

    expected_used = entry_size(stored["url"], memory_store.get(stored["url"])) + entry_size(
        "otp_citizen@example.com", "{}"
    )
    assert file_store.usage_info() == {
        "used": expected_used,
        "available": 10_000 - expected_used,
        "files": 1,
    }


def test_usage_available_never_negative(memory_store, clock):
    file_store = FileStore(memory_store, quota_bytes=10, clock=clock)
    file_store.store_file("note.txt", "text/plain", b"hello world")

    assert file_store.usage_info()["available"] == 0


def test_list_metadata_newest_first(file_store, clock, memory_store):
    first = file_store.store_file("one.txt", "text/plain", b"1")
    clock.advance(5)
    second = file_store.store_file("two.txt", "text/plain", b"2")
    memory_store.set("file_3_broken", "nope")

    assert [f["url"] for f in file_store.list_metadata()] == [second["url"], first["url"]]


def test_non_ascii_digits_rejected_before_storage_read(clock):
    class ExplodingStore(MemoryKeyValueStore):
        def get(self, key):
            raise AssertionError("storage should not be read")

    file_store = FileStore(ExplodingStore(), clock=clock)

    assert file_store.lookup("file_١٢٣_abc").status is FileStatus.INVALID_ID
