"""Tests for the Supabase Storage session store."""

from dataclasses import dataclass, field

import pytest

from image_optimizer.adapters.supabase_session_store import (
    PLACEHOLDER_NAME,
    SupabaseSessionStore,
)
from image_optimizer.domain.errors import SessionStorageError
from image_optimizer.services.archives import ArchiveService


@dataclass
class FakeBucket:
    objects: dict[str, bytes] = field(default_factory=dict)
    uploads: list[tuple[str, dict[str, str]]] = field(default_factory=list)
    fail: bool = False

    def upload(self, path: str, file: bytes, file_options: dict[str, str]) -> None:
        if self.fail:
            raise RuntimeError("storage unavailable")
        if path in self.objects and file_options.get("upsert") != "true":
            raise RuntimeError("The resource already exists")
        self.uploads.append((path, file_options))
        self.objects[path] = file

    def list(self, path: str, options: dict[str, int]) -> list[dict[str, object]]:
        if self.fail:
            raise RuntimeError("storage unavailable")
        prefix = f"{path}/" if path else ""
        seen: list[dict[str, object]] = []
        folders: set[str] = set()
        for key in self.objects:
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix) :]
            if "/" in rest:
                folder = rest.split("/", 1)[0]
                if folder not in folders:
                    folders.add(folder)
                    seen.append({"name": folder, "id": None})
            else:
                seen.append({"name": rest, "id": f"id-{key}"})
        offset = options.get("offset", 0)
        return seen[offset : offset + options.get("limit", 100)]

    def download(self, path: str) -> bytes:
        return self.objects[path]


@dataclass
class FakeStorage:
    bucket: FakeBucket = field(default_factory=FakeBucket)
    requested: list[str] = field(default_factory=list)

    def from_(self, name: str) -> FakeBucket:
        self.requested.append(name)
        return self.bucket


@dataclass
class FakeSupabaseClient:
    storage: FakeStorage = field(default_factory=FakeStorage)


def test_create_session_uploads_placeholder() -> None:
    client = FakeSupabaseClient()
    store = SupabaseSessionStore(client, bucket="images")

    session = store.create_session("optimize_1_a", "optimize")

    assert session.location == "optimize_1_a"
    assert f"optimize_1_a/{PLACEHOLDER_NAME}" in client.storage.bucket.objects
    assert client.storage.requested == ["images"]


def test_create_session_wraps_storage_errors() -> None:
    client = FakeSupabaseClient()
    client.storage.bucket.fail = True
    store = SupabaseSessionStore(client, bucket="images")

    with pytest.raises(SessionStorageError):
        store.create_session("optimize_1_a", "optimize")


def test_write_file_upserts_and_lists_without_placeholder() -> None:
    client = FakeSupabaseClient()
    store = SupabaseSessionStore(client, bucket="images")
    session = store.create_session("optimize_1_a", "optimize")

    store.write_file(session, "cat-optimized.webp", b"one")
    size = store.write_file(session, "cat-optimized.webp", b"three")

    files = list(store.list_session_files(session.id))
    assert [item.name for item in files] == ["cat-optimized.webp"]
    assert size == 5
    assert store.read_file(files[0].path) == b"three"
    _, options = client.storage.bucket.uploads[-1]
    assert options == {"content-type": "image/webp", "upsert": "true"}


def test_list_session_files_pages_through_results() -> None:
    client = FakeSupabaseClient()
    store = SupabaseSessionStore(client, bucket="images")
    session = store.create_session("rename_1_a", "rename")
    for index in range(150):
        store.write_file(session, f"trip-{index}.jpg", b"x")

    names = [item.name for item in store.list_session_files(session.id)]

    assert len(names) == 150


def test_list_top_level_separates_sessions_and_loose_files() -> None:
    client = FakeSupabaseClient()
    client.storage.bucket.objects["legacy-optimized.webp"] = b"legacy"
    store = SupabaseSessionStore(client, bucket="images")
    store.create_session("optimize_1_a", "optimize")

    entries = {entry.name: entry.is_session for entry in store.list_top_level()}

    assert entries == {"legacy-optimized.webp": False, "optimize_1_a": True}


def test_list_top_level_wraps_storage_errors() -> None:
    client = FakeSupabaseClient()
    client.storage.bucket.fail = True
    store = SupabaseSessionStore(client, bucket="images")

    with pytest.raises(SessionStorageError):
        list(store.list_top_level())


def test_get_file_and_unknown_session() -> None:
    client = FakeSupabaseClient()
    store = SupabaseSessionStore(client, bucket="images")
    session = store.create_session("rename_1_a", "rename")
    store.write_file(session, "trip-0.png", b"png")

    assert store.get_file(session.id, "trip-0.png") is not None
    assert store.get_file(session.id, "trip-9.png") is None
    assert list(store.list_session_files("does-not-exist")) == []


def test_list_session_files_wraps_storage_errors() -> None:
    client = FakeSupabaseClient()
    client.storage.bucket.fail = True
    store = SupabaseSessionStore(client, bucket="images")

    with pytest.raises(SessionStorageError, match="optimize_1_a"):
        list(store.list_session_files("optimize_1_a"))


def test_session_bundle_reports_listing_failure() -> None:
    client = FakeSupabaseClient()
    client.storage.bucket.fail = True
    store = SupabaseSessionStore(client, bucket="images")

    with pytest.raises(SessionStorageError):
        ArchiveService(store).build_archive(session_id="optimize_1_a")


def test_get_loose_file() -> None:
    client = FakeSupabaseClient()
    client.storage.bucket.objects["legacy-optimized.webp"] = b"old"
    store = SupabaseSessionStore(client, bucket="images")
    session = store.create_session("optimize_1_a", "optimize")
    store.write_file(session, "cat-optimized.webp", b"new")

    stored = store.get_loose_file("legacy-optimized.webp")

    assert stored is not None
    assert store.read_file(stored.path) == b"old"
    assert store.get_loose_file("optimize_1_a") is None
    assert store.get_loose_file("missing.webp") is None
