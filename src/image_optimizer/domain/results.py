"""Domain models for batch results."""

from dataclasses import dataclass, field

from image_optimizer.domain.sessions import SessionRecord


@dataclass(frozen=True)
class UploadedFile:
    """One part of an incoming multipart batch."""

    field_name: str
    filename: str | None
    content: bytes


@dataclass(frozen=True)
class FileRecord:
    """Outcome of one successfully processed upload."""

    id: str
    filename: str
    original_size: int
    optimized_size: int
    compression_ratio: float
    download_url: str
    session_id: str


@dataclass(frozen=True)
class BatchResult:
    """Session plus the ordered records produced by one batch."""

    session: SessionRecord
    records: list[FileRecord] = field(default_factory=list)


def compression_ratio(original_size: int, output_size: int) -> float:
    """Return the size reduction in percent; negative when the output grew."""
    if original_size <= 0:
        return 0.0
    return (1.0 - (output_size / original_size)) * 100.0
