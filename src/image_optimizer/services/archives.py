"""ZIP bundle building across sessions."""

import logging
import zipfile
from collections.abc import Iterator
from dataclasses import dataclass
from io import BytesIO

from image_optimizer.domain.archives import Archive
from image_optimizer.domain.errors import NoMatchingFilesError
from image_optimizer.domain.sessions import StoredFile
from image_optimizer.services.naming import looks_like_rename_output
from image_optimizer.services.sessions import SessionStore

ALL_SESSIONS_ARCHIVE = "all-sessions.zip"
RENAMED_ARCHIVE = "renamed-images.zip"
OPTIMIZED_ARCHIVE = "optimized-images.zip"

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ArchiveMember:
    stored: StoredFile
    arcname: str
    from_session_dir: bool


@dataclass
class ArchiveService:
    """Builds downloadable ZIP bundles from the session store."""

    store: SessionStore

    def build_archive(
        self, session_id: str | None = None, files: str | None = None
    ) -> Archive:
        """Bundle one session, or the whole store, optionally filtered by name."""
        requested = parse_file_filter(files)
        if requested:
            _logger.info("Processing specific files: %s", ", ".join(sorted(requested)))

        buffer = BytesIO()
        added: list[_ArchiveMember] = []
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as bundle:
            for member in self._members(session_id):
                if requested and member.stored.name not in requested:
                    continue
                try:
                    content = self.store.read_file(member.stored.path)
                except Exception:
                    _logger.warning(
                        "Failed to read file %s", member.stored.path, exc_info=True
                    )
                    continue
                _logger.info("Adding file to ZIP: %s", member.arcname)
                bundle.writestr(member.arcname, content)
                added.append(member)

        if not added:
            _logger.info("No files were added to the ZIP")
            raise NoMatchingFilesError()

        filename = _archive_name(session_id, added)
        _logger.info(
            "Successfully created ZIP file %s with %s images", filename, len(added)
        )
        return Archive(
            filename=filename, content=buffer.getvalue(), file_count=len(added)
        )

    def _members(self, session_id: str | None) -> Iterator[_ArchiveMember]:
        if session_id:
            for stored in self.store.list_session_files(session_id):
                yield _ArchiveMember(stored, stored.name, from_session_dir=False)
            return

        for entry in self.store.list_top_level():
            if not entry.is_session:
                stored = StoredFile(name=entry.name, path=entry.path)
                yield _ArchiveMember(stored, entry.name, from_session_dir=False)
                continue
            for stored in self.store.list_session_files(entry.name):
                yield _ArchiveMember(
                    stored, f"{entry.name}/{stored.name}", from_session_dir=True
                )


def parse_file_filter(files: str | None) -> set[str]:
    """Split a comma-separated filename filter, ignoring empty segments."""
    if not files:
        return set()
    return {name for name in files.split(",") if name}


def _archive_name(session_id: str | None, members: list[_ArchiveMember]) -> str:
    """Pick a bundle name; the rename/optimize guess is only a heuristic."""
    if session_id:
        return f"{session_id}.zip"
    if any(member.from_session_dir for member in members):
        return ALL_SESSIONS_ARCHIVE
    if all(looks_like_rename_output(member.stored.name) for member in members):
        return RENAMED_ARCHIVE
    return OPTIMIZED_ARCHIVE
