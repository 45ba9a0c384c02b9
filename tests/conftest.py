"""Shared test fixtures."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from image_optimizer.adapters.local_session_store import LocalSessionStore
from image_optimizer.adapters.pillow_transformer import PillowWebpTransformer
from image_optimizer.config import Settings
from image_optimizer.containers import AppContainer
from image_optimizer.domain.errors import SessionStorageError, TransformError
from image_optimizer.domain.sessions import SessionRecord, StoredFile, StoreEntry
from image_optimizer.services.archives import ArchiveService
from image_optimizer.services.batches import BatchService
from image_optimizer.services.naming import NamingAuthority
from image_optimizer.services.sessions import SessionService, SessionStore
from image_optimizer.services.transform import Transformer

JPEG_MAGIC = b"\xff\xd8\xff\xe0"


def make_image_bytes(
    width: int = 64, height: int = 48, image_format: str = "JPEG"
) -> bytes:
    """Render a small solid-color image."""
    buffer = BytesIO()
    Image.new("RGB", (width, height), color=(200, 80, 40)).save(
        buffer, format=image_format
    )
    return buffer.getvalue()


def fake_jpeg(size: int) -> bytes:
    """Bytes that pass signature sniffing without being decodable."""
    return JPEG_MAGIC + b"\x00" * (size - len(JPEG_MAGIC))


@dataclass
class InMemorySessionStore(SessionStore):
    """In-memory session store for tests."""

    sessions: dict[str, dict[str, bytes]] = field(default_factory=dict)
    loose_files: dict[str, bytes] = field(default_factory=dict)
    fail_writes_for: set[str] = field(default_factory=set)
    unreadable: set[str] = field(default_factory=set)

    def create_session(self, session_id: str, kind: str) -> SessionRecord:
        self.sessions[session_id] = {}
        return SessionRecord(
            id=session_id,
            kind=kind,
            created_at=datetime.now(tz=UTC),
            location=session_id,
        )

    def write_file(self, session: SessionRecord, filename: str, content: bytes) -> int:
        if filename in self.fail_writes_for:
            raise OSError(f"disk full while writing {filename}")
        self.sessions[session.id][filename] = content
        return len(content)

    def list_session_files(self, session_id: str) -> Iterator[StoredFile]:
        for name in self.sessions.get(session_id, {}):
            yield StoredFile(
                name=name, path=f"{session_id}/{name}", session_id=session_id
            )

    def list_top_level(self) -> Iterator[StoreEntry]:
        for name in self.loose_files:
            yield StoreEntry(name=name, path=name, is_session=False)
        for session_id in self.sessions:
            yield StoreEntry(name=session_id, path=session_id, is_session=True)

    def get_file(self, session_id: str, filename: str) -> StoredFile | None:
        if filename not in self.sessions.get(session_id, {}):
            return None
        return StoredFile(
            name=filename, path=f"{session_id}/{filename}", session_id=session_id
        )

    def get_loose_file(self, filename: str) -> StoredFile | None:
        if filename not in self.loose_files:
            return None
        return StoredFile(name=filename, path=filename)

    def read_file(self, path: str) -> bytes:
        if path in self.unreadable:
            raise OSError(f"cannot read {path}")
        if "/" not in path:
            return self.loose_files[path]
        session_id, name = path.split("/", 1)
        return self.sessions[session_id][name]


@dataclass
class BrokenSessionStore(InMemorySessionStore):
    """Session store whose medium cannot be prepared or listed."""

    def create_session(self, session_id: str, kind: str) -> SessionRecord:
        raise SessionStorageError("read-only filesystem")

    def list_top_level(self) -> Iterator[StoreEntry]:
        raise SessionStorageError("read-only filesystem")


@dataclass
class FakeTransformer(Transformer):
    """Fake transformer returning fixed bytes, failing on marked payloads."""

    output: bytes = b"RIFF\x00\x00\x00\x00WEBPVP8 fake"
    fail_marker: bytes = b"FAIL"
    calls: int = 0

    def transform(self, data: bytes) -> bytes:
        self.calls += 1
        if self.fail_marker in data:
            raise TransformError("cannot decode")
        return self.output


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(output_dir=tmp_path / "optimized")


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def transformer() -> FakeTransformer:
    return FakeTransformer()


@pytest.fixture
def naming() -> NamingAuthority:
    return NamingAuthority()


@pytest.fixture
def batch_service(
    session_store: InMemorySessionStore,
    transformer: FakeTransformer,
    naming: NamingAuthority,
) -> BatchService:
    return BatchService(
        session_service=SessionService(store=session_store, naming=naming),
        transformer=transformer,
    )


@pytest.fixture
def container(settings: Settings) -> AppContainer:
    store = LocalSessionStore(root=settings.output_dir)
    session_service = SessionService(store=store, naming=NamingAuthority())
    batch_service = BatchService(
        session_service=session_service,
        transformer=PillowWebpTransformer(
            max_width=settings.max_width,
            max_height=settings.max_height,
            quality=settings.webp_quality,
        ),
        public_url_prefix=settings.public_url_prefix,
        max_upload_bytes=settings.max_upload_bytes,
    )
    return AppContainer(
        settings=settings,
        session_service=session_service,
        batch_service=batch_service,
        archive_service=ArchiveService(store),
    )
