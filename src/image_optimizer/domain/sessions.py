"""Domain models for output sessions."""

from dataclasses import dataclass
from datetime import datetime

OPTIMIZE_KIND = "optimize"
RENAME_KIND = "rename"


@dataclass(frozen=True)
class SessionRecord:
    """Represents an allocated output session."""

    id: str
    kind: str
    created_at: datetime
    location: str


@dataclass(frozen=True)
class StoredFile:
    """A file persisted in the session store."""

    name: str
    path: str
    session_id: str | None = None


@dataclass(frozen=True)
class StoreEntry:
    """A top-level entry: either a loose file or a session directory."""

    name: str
    path: str
    is_session: bool
