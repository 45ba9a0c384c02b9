"""FastAPI application factory."""

import asyncio
import logging
import mimetypes
from collections.abc import AsyncIterator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from starlette.datastructures import FormData, UploadFile

from image_optimizer.api.models import (
    FileRecordResponse,
    SessionListResponse,
    SessionSummary,
)
from image_optimizer.app_logging import configure_logging
from image_optimizer.containers import AppContainer
from image_optimizer.domain.errors import (
    NoFilesProcessedError,
    NoMatchingFilesError,
    SessionStorageError,
)
from image_optimizer.domain.results import BatchResult, UploadedFile

mimetypes.add_type("image/webp", ".webp")
BASE_NAME_FIELD = "base_name"


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    app = FastAPI(title="Image Optimizer")
    app.state.container = container
    app.add_middleware(
        CORSMiddleware,
        allow_origins=container.settings.cors_allow_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/optimize", response_model=list[FileRecordResponse])
    async def optimize(request: Request) -> list[FileRecordResponse]:
        """Resize and convert uploaded images to WebP."""
        state_container: AppContainer = request.app.state.container
        limit = state_container.settings.max_upload_bytes
        try:
            async with request.form() as form:
                fields = form.multi_items()
                logger.info("Starting to process %s multipart fields", len(fields))
                result = await state_container.batch_service.optimize(
                    _iter_uploads(form, limit)
                )
        except NoFilesProcessedError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc
        except SessionStorageError as exc:
            logger.exception("Failed to allocate optimize session")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create output session",
            ) from exc
        return _to_response(result)

    @app.post("/api/rename", response_model=list[FileRecordResponse])
    async def rename(request: Request) -> list[FileRecordResponse]:
        """Copy uploaded images under sequentially numbered names."""
        state_container: AppContainer = request.app.state.container
        limit = state_container.settings.max_upload_bytes
        try:
            async with request.form() as form:
                result = await state_container.batch_service.rename(
                    _iter_uploads(form, limit), _base_name(form)
                )
        except NoFilesProcessedError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc
        except SessionStorageError as exc:
            logger.exception("Failed to allocate rename session")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create output session",
            ) from exc
        return _to_response(result)

    @app.get("/api/download-zip")
    async def download_zip(
        request: Request, session: str | None = None, files: str | None = None
    ) -> Response:
        """Return one session, or every session, as a ZIP archive."""
        state_container: AppContainer = request.app.state.container
        logger.info("Received request to download images as ZIP (session=%s)", session)
        try:
            archive = await asyncio.to_thread(
                state_container.archive_service.build_archive, session, files
            )
        except NoMatchingFilesError as exc:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
            ) from exc
        except SessionStorageError as exc:
            logger.exception("Failed to enumerate output store")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to read optimized images directory",
            ) from exc
        return Response(
            content=archive.content,
            media_type="application/zip",
            headers={
                "Content-Disposition": f'attachment; filename="{archive.filename}"'
            },
        )

    @app.get("/api/sessions", response_model=SessionListResponse)
    async def list_sessions(request: Request) -> SessionListResponse:
        """List sessions and loose files in the output store."""
        state_container: AppContainer = request.app.state.container
        try:
            summaries = await asyncio.to_thread(
                state_container.session_service.list_sessions
            )
        except SessionStorageError as exc:
            logger.exception("Failed to enumerate output store")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to read optimized images directory",
            ) from exc
        return SessionListResponse(
            sessions=[SessionSummary.model_validate(item) for item in summaries]
        )

    prefix = container.settings.public_url_prefix.rstrip("/")

    @app.get(prefix + "/{filename}")
    async def download_loose_file(filename: str, request: Request) -> Response:
        """Serve a file stored outside any session."""
        state_container: AppContainer = request.app.state.container
        store = state_container.session_service.store
        try:
            stored = await asyncio.to_thread(store.get_loose_file, filename)
        except SessionStorageError as exc:
            logger.exception("Failed to enumerate output store")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to read optimized images directory",
            ) from exc
        if stored is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        content = await asyncio.to_thread(store.read_file, stored.path)
        return Response(content=content, media_type=_media_type(filename))

    @app.get(prefix + "/{session_id}/{filename}")
    async def download_file(
        session_id: str, filename: str, request: Request
    ) -> Response:
        """Serve a single output file from a session."""
        state_container: AppContainer = request.app.state.container
        store = state_container.session_service.store
        try:
            stored = await asyncio.to_thread(store.get_file, session_id, filename)
        except SessionStorageError as exc:
            logger.exception("Failed to enumerate session %s", session_id)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to read optimized images directory",
            ) from exc
        if stored is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        content = await asyncio.to_thread(store.read_file, stored.path)
        return Response(content=content, media_type=_media_type(filename))

    return app


async def _iter_uploads(form: FormData, limit: int) -> AsyncIterator[UploadedFile]:
    """Yield multipart parts in received order, reading one file at a time."""
    for field_name, value in form.multi_items():
        if isinstance(value, UploadFile):
            # limit + 1 bytes is enough to flag an oversized upload
            content = await value.read(limit + 1)
            yield UploadedFile(
                field_name=field_name,
                filename=value.filename or None,
                content=content,
            )
        elif field_name != BASE_NAME_FIELD:
            yield UploadedFile(field_name=field_name, filename=None, content=b"")


def _base_name(form: FormData) -> str | None:
    value = form.get(BASE_NAME_FIELD)
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _media_type(filename: str) -> str:
    return mimetypes.guess_type(filename)[0] or "application/octet-stream"


def _to_response(result: BatchResult) -> list[FileRecordResponse]:
    return [FileRecordResponse.model_validate(record) for record in result.records]
