"""Filesystem-backed session store."""

import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from image_optimizer.domain.errors import SessionStorageError
from image_optimizer.domain.sessions import SessionRecord, StoredFile, StoreEntry
from image_optimizer.services.sessions import SessionStore

_SAFE_NAME = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]*$")


@dataclass
class LocalSessionStore(SessionStore):
    """Stores each session as a directory under a root folder."""

    root: Path

    def ensure_root(self) -> None:
        """Create the root directory if needed."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SessionStorageError(
                f"Failed to create output directory: {self.root}"
            ) from exc

    def create_session(self, session_id: str, kind: str) -> SessionRecord:
        """Create the session directory; the id must be new."""
        if not _is_safe_name(session_id):
            raise SessionStorageError(f"Invalid session id: {session_id!r}")
        self.ensure_root()
        location = self.root / session_id
        try:
            location.mkdir(exist_ok=False)
        except OSError as exc:
            raise SessionStorageError(
                f"Failed to create session directory: {location}"
            ) from exc
        return SessionRecord(
            id=session_id,
            kind=kind,
            created_at=datetime.now(tz=UTC),
            location=str(location),
        )

    def write_file(self, session: SessionRecord, filename: str, content: bytes) -> int:
        """Write the file, replacing any previous one with the same name."""
        if not _is_safe_name(filename):
            raise OSError(f"Refusing to write unsafe filename: {filename!r}")
        target = Path(session.location) / filename
        target.write_bytes(content)
        return target.stat().st_size

    def list_session_files(self, session_id: str) -> Iterator[StoredFile]:
        """Yield regular files in the session directory."""
        if not _is_safe_name(session_id):
            return
        directory = self.root / session_id
        if not directory.is_dir():
            return
        try:
            children = list(directory.iterdir())
        except OSError as exc:
            raise SessionStorageError(
                f"Failed to read session directory: {directory}"
            ) from exc
        for path in children:
            if path.is_file():
                yield StoredFile(name=path.name, path=str(path), session_id=session_id)

    def list_top_level(self) -> Iterator[StoreEntry]:
        """Yield loose files and session directories at the root."""
        if not self.root.exists():
            return
        try:
            children = list(self.root.iterdir())
        except OSError as exc:
            raise SessionStorageError(
                "Failed to read optimized images directory"
            ) from exc
        for path in children:
            if path.is_dir():
                yield StoreEntry(name=path.name, path=str(path), is_session=True)
            elif path.is_file():
                yield StoreEntry(name=path.name, path=str(path), is_session=False)

    def get_file(self, session_id: str, filename: str) -> StoredFile | None:
        """Return the stored file if both names are safe and it exists."""
        if not (_is_safe_name(session_id) and _is_safe_name(filename)):
            return None
        path = self.root / session_id / filename
        if not path.is_file():
            return None
        return StoredFile(name=filename, path=str(path), session_id=session_id)

    def get_loose_file(self, filename: str) -> StoredFile | None:
        """Return a file stored directly under the root, outside any session."""
        if not _is_safe_name(filename):
            return None
        path = self.root / filename
        if not path.is_file():
            return None
        return StoredFile(name=filename, path=str(path))

    def read_file(self, path: str) -> bytes:
        """Read a file previously returned by a listing."""
        return Path(path).read_bytes()


def _is_safe_name(name: str) -> bool:
    """Reject empty names, hidden names and anything with separators."""
    return bool(_SAFE_NAME.match(name))
