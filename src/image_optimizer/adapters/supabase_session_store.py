"""Supabase Storage-backed session store."""

import mimetypes
import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from image_optimizer.domain.errors import SessionStorageError
from image_optimizer.domain.sessions import SessionRecord, StoredFile, StoreEntry
from image_optimizer.services.sessions import SessionStore

mimetypes.add_type("image/webp", ".webp")
PLACEHOLDER_NAME = ".emptyFolderPlaceholder"
_PAGE_SIZE = 100
_SAFE_NAME = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]*$")


@dataclass
class SupabaseSessionStore(SessionStore):
    """Stores each session as an object prefix in a storage bucket."""

    client: Client
    bucket: str

    def create_session(self, session_id: str, kind: str) -> SessionRecord:
        """Reserve the prefix by uploading a folder placeholder."""
        if not _SAFE_NAME.match(session_id):
            raise SessionStorageError(f"Invalid session id: {session_id!r}")
        try:
            self._bucket().upload(
                f"{session_id}/{PLACEHOLDER_NAME}",
                b"",
                {"content-type": "application/octet-stream"},
            )
        except Exception as exc:  # noqa: BLE001
            raise SessionStorageError(
                f"Failed to create session {session_id} in bucket {self.bucket}"
            ) from exc
        return SessionRecord(
            id=session_id,
            kind=kind,
            created_at=datetime.now(tz=UTC),
            location=session_id,
        )

    def write_file(self, session: SessionRecord, filename: str, content: bytes) -> int:
        """Upload with upsert so the last write wins."""
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        self._bucket().upload(
            f"{session.location}/{filename}",
            content,
            {"content-type": content_type, "upsert": "true"},
        )
        return len(content)

    def list_session_files(self, session_id: str) -> Iterator[StoredFile]:
        """Yield objects under the session prefix."""
        if not _SAFE_NAME.match(session_id):
            return
        try:
            items = list(self._list(session_id))
        except Exception as exc:  # noqa: BLE001
            raise SessionStorageError(
                f"Failed to list session {session_id} in bucket {self.bucket}"
            ) from exc
        for item in items:
            name = item.get("name")
            if not name or name == PLACEHOLDER_NAME or item.get("id") is None:
                continue
            yield StoredFile(
                name=name, path=f"{session_id}/{name}", session_id=session_id
            )

    def list_top_level(self) -> Iterator[StoreEntry]:
        """Yield root objects and session prefixes."""
        try:
            items = list(self._list(""))
        except Exception as exc:  # noqa: BLE001
            raise SessionStorageError(
                f"Failed to list bucket {self.bucket}"
            ) from exc
        for item in items:
            name = item.get("name")
            if not name or name == PLACEHOLDER_NAME:
                continue
            yield StoreEntry(name=name, path=name, is_session=item.get("id") is None)

    def get_file(self, session_id: str, filename: str) -> StoredFile | None:
        """Return the object if it is listed under the session."""
        for stored in self.list_session_files(session_id):
            if stored.name == filename:
                return stored
        return None

    def get_loose_file(self, filename: str) -> StoredFile | None:
        """Return a root-level object by name."""
        if not _SAFE_NAME.match(filename):
            return None
        for entry in self.list_top_level():
            if entry.name == filename and not entry.is_session:
                return StoredFile(name=filename, path=entry.path)
        return None

    def read_file(self, path: str) -> bytes:
        """Download an object."""
        return self._bucket().download(path)

    def _bucket(self):  # type: ignore[no-untyped-def]
        return self.client.storage.from_(self.bucket)

    def _list(self, prefix: str) -> Iterator[dict]:
        """Page through a prefix listing."""
        offset = 0
        while True:
            page = self._bucket().list(
                prefix, {"limit": _PAGE_SIZE, "offset": offset}
            )
            yield from page
            if len(page) < _PAGE_SIZE:
                return
            offset += _PAGE_SIZE
