"""Session store interface and session allocation."""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol

from image_optimizer.domain.sessions import SessionRecord, StoredFile, StoreEntry
from image_optimizer.services.naming import NamingAuthority


class SessionStore(Protocol):
    """Persistence interface for session outputs."""

    def create_session(self, session_id: str, kind: str) -> SessionRecord:
        """Prepare a writable location for a new session."""

    def write_file(self, session: SessionRecord, filename: str, content: bytes) -> int:
        """Persist bytes under the session and return the stored size."""

    def list_session_files(self, session_id: str) -> Iterator[StoredFile]:
        """Yield the files of one session; nothing if it is unknown."""

    def list_top_level(self) -> Iterator[StoreEntry]:
        """Yield loose files and session directories at the store root."""

    def get_file(self, session_id: str, filename: str) -> StoredFile | None:
        """Return a single stored file, if present."""

    def get_loose_file(self, filename: str) -> StoredFile | None:
        """Return a file stored outside any session, if present."""

    def read_file(self, path: str) -> bytes:
        """Return the bytes stored at a path returned by a listing."""


@dataclass
class SessionService:
    """Allocates sessions on the configured store."""

    store: SessionStore
    naming: NamingAuthority

    def open_session(self, kind: str) -> SessionRecord:
        """Create a session with a fresh identifier."""
        session_id = self.naming.new_session_id(kind)
        return self.store.create_session(session_id, kind)

    def list_sessions(self) -> list[dict[str, object]]:
        """Summarize the store for listing endpoints."""
        summaries: list[dict[str, object]] = []
        for entry in self.store.list_top_level():
            if entry.is_session:
                files = [
                    item.name for item in self.store.list_session_files(entry.name)
                ]
                summaries.append(
                    {"session_id": entry.name, "is_session": True, "files": files}
                )
            else:
                summaries.append(
                    {"session_id": None, "is_session": False, "files": [entry.name]}
                )
        return summaries
