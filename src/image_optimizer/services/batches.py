"""Batch processing for optimize and rename uploads."""

import asyncio
import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from dataclasses import dataclass
from uuid import uuid4

from image_optimizer.domain.errors import NoFilesProcessedError
from image_optimizer.domain.results import (
    BatchResult,
    FileRecord,
    UploadedFile,
    compression_ratio,
)
from image_optimizer.domain.sessions import OPTIMIZE_KIND, RENAME_KIND, SessionRecord
from image_optimizer.services.naming import (
    NamingAuthority,
    file_extension,
    optimized_filename,
    renamed_filename,
)
from image_optimizer.services.sessions import SessionService, SessionStore
from image_optimizer.services.transform import (
    ACCEPTED_FIELD_NAMES,
    MAX_UPLOAD_BYTES,
    Transformer,
    is_allowed_extension,
    sniff_image_format,
)

_logger = logging.getLogger(__name__)

Uploads = Iterable[UploadedFile] | AsyncIterable[UploadedFile]


@dataclass
class BatchService:
    """Drives one upload batch through validation, transform and storage."""

    session_service: SessionService
    transformer: Transformer
    public_url_prefix: str = "/optimized"
    max_upload_bytes: int = MAX_UPLOAD_BYTES

    @property
    def store(self) -> SessionStore:
        return self.session_service.store

    @property
    def naming(self) -> NamingAuthority:
        return self.session_service.naming

    async def optimize(self, uploads: Uploads) -> BatchResult:
        """Resize and re-encode every acceptable upload."""
        session = await asyncio.to_thread(
            self.session_service.open_session, OPTIMIZE_KIND
        )
        _logger.info("Opened session %s", session.id)
        records: list[FileRecord] = []
        async for upload in _each(uploads):
            record = await self._optimize_one(session, upload)
            if record is not None:
                _logger.info("Successfully optimized image: %s", record.filename)
                records.append(record)
        return self._finish(session, records)

    async def rename(
        self, uploads: Uploads, base_name: str | None = None
    ) -> BatchResult:
        """Copy every acceptable upload under a numbered name."""
        session = await asyncio.to_thread(
            self.session_service.open_session, RENAME_KIND
        )
        _logger.info("Opened session %s", session.id)
        records: list[FileRecord] = []
        async for upload in _each(uploads):
            record = await self._rename_one(session, upload, base_name)
            if record is not None:
                _logger.info("Successfully renamed image: %s", record.filename)
                records.append(record)
        return self._finish(session, records)

    async def _optimize_one(
        self, session: SessionRecord, upload: UploadedFile
    ) -> FileRecord | None:
        if not self._accept(upload):
            return None
        image_format = sniff_image_format(upload.content)
        if image_format is None:
            _logger.info(
                "Invalid image data - not a recognized image format: %s",
                upload.filename,
            )
            return None
        _logger.info("Detected image format %s for %s", image_format, upload.filename)

        try:
            output = await asyncio.to_thread(
                self.transformer.transform, upload.content
            )
        except Exception:
            _logger.warning(
                "Failed to optimize image %s", upload.filename, exc_info=True
            )
            return None

        filename = optimized_filename(upload.filename or "")
        return await self._store(session, filename, upload, output)

    async def _rename_one(
        self, session: SessionRecord, upload: UploadedFile, base_name: str | None
    ) -> FileRecord | None:
        if not self._accept(upload):
            return None
        index = self.naming.next_rename_index()
        filename = renamed_filename(base_name, index, upload.filename or "")
        return await self._store(session, filename, upload, upload.content)

    def _accept(self, upload: UploadedFile) -> bool:
        """Apply the field, filename, extension and size filters."""
        if upload.field_name not in ACCEPTED_FIELD_NAMES:
            _logger.info("Skipping field with unexpected name: %s", upload.field_name)
            return False
        if not upload.filename:
            _logger.info("Missing filename for field: %s", upload.field_name)
            return False
        extension = file_extension(upload.filename)
        if not is_allowed_extension(extension):
            _logger.info("Skipping file with unsupported extension: %s", extension)
            return False
        size = len(upload.content)
        if size > self.max_upload_bytes:
            _logger.info(
                "File too large: %s bytes (max: %s bytes)", size, self.max_upload_bytes
            )
            return False
        return True

    async def _store(
        self,
        session: SessionRecord,
        filename: str,
        upload: UploadedFile,
        output: bytes,
    ) -> FileRecord | None:
        try:
            written = await asyncio.to_thread(
                self.store.write_file, session, filename, output
            )
        except Exception:
            _logger.warning(
                "Failed to write %s to session %s", filename, session.id, exc_info=True
            )
            return None

        original_size = len(upload.content)
        return FileRecord(
            id=str(uuid4()),
            filename=filename,
            original_size=original_size,
            optimized_size=written,
            compression_ratio=compression_ratio(original_size, written),
            download_url=self._download_url(session.id, filename),
            session_id=session.id,
        )

    def _download_url(self, session_id: str, filename: str) -> str:
        prefix = self.public_url_prefix.rstrip("/")
        return f"{prefix}/{session_id}/{filename}"

    def _finish(self, session: SessionRecord, records: list[FileRecord]) -> BatchResult:
        _logger.info(
            "Completed batch for session %s, processed %s images",
            session.id,
            len(records),
        )
        if not records:
            raise NoFilesProcessedError()
        return BatchResult(session=session, records=records)


async def _each(uploads: Uploads) -> AsyncIterator[UploadedFile]:
    """Iterate plain or async upload sources, pulling one part at a time."""
    if isinstance(uploads, AsyncIterable):
        async for upload in uploads:
            yield upload
    else:
        for upload in uploads:
            yield upload
