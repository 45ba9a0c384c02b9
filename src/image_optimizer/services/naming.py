"""Session identifiers and output file naming."""

import itertools
import re
import secrets
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import PurePath

OPTIMIZED_SUFFIX = "-optimized"
OPTIMIZED_EXTENSION = "webp"
DEFAULT_STEM = "image"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass
class NamingAuthority:
    """Allocates session ids and the process-wide rename counter."""

    token_bytes: int = 6
    _counter: "itertools.count[int]" = field(
        default_factory=itertools.count, init=False, repr=False
    )
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def new_session_id(self, kind: str, now: datetime | None = None) -> str:
        """Return `{kind}_{timestamp}_{token}` with a random token."""
        moment = now or datetime.now(tz=UTC)
        timestamp = moment.strftime("%Y%m%d%H%M%S")
        token = secrets.token_hex(self.token_bytes)
        return f"{kind}_{timestamp}_{token}"

    def next_rename_index(self) -> int:
        """Return the next rename index, starting at 0."""
        with self._lock:
            return next(self._counter)


def sanitize_filename(name: str) -> str:
    """Drop directory components and replace unsafe characters with `_`."""
    bare = PurePath(name.replace("\\", "/")).name
    return _UNSAFE_CHARS.sub("_", bare)


def file_extension(filename: str) -> str | None:
    """Return the extension without the dot, or None."""
    suffix = PurePath(filename).suffix
    if not suffix or suffix == ".":
        return None
    return suffix[1:]


def file_stem(filename: str) -> str:
    stem = PurePath(sanitize_filename(filename)).stem.lstrip(".")
    return stem or DEFAULT_STEM


def optimized_filename(original: str) -> str:
    """Build `{stem}-optimized.webp` for a transformed upload."""
    return f"{file_stem(original)}{OPTIMIZED_SUFFIX}.{OPTIMIZED_EXTENSION}"


def renamed_filename(base_name: str | None, index: int, original: str) -> str:
    """Build `{base}-{index}.{ext}` keeping the upload's own extension."""
    base = sanitize_filename(base_name or "").strip("._") or DEFAULT_STEM
    extension = file_extension(sanitize_filename(original))
    if extension is None:
        return f"{base}-{index}"
    return f"{base}-{index}.{extension}"


def looks_like_rename_output(filename: str) -> bool:
    """Best-effort guess whether a file came from the rename operation."""
    return "-" in filename and OPTIMIZED_SUFFIX not in filename
