"""Transform capability interface and upload validation helpers."""

from typing import Protocol

ALLOWED_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "bmp", "tiff"})
ACCEPTED_FIELD_NAMES = frozenset({"file", "files"})
MAX_UPLOAD_BYTES = 15 * 1024 * 1024


class Transformer(Protocol):
    """Interface for the resize and re-encode step."""

    def transform(self, data: bytes) -> bytes:
        """Return processed image bytes or raise TransformError."""


def is_allowed_extension(extension: str | None) -> bool:
    """Check an extension against the allow-list, ignoring case."""
    if not extension:
        return False
    return extension.lower() in ALLOWED_EXTENSIONS


def sniff_image_format(data: bytes) -> str | None:
    """Infer an image format from file signatures."""
    if data.startswith(b"\xff\xd8\xff"):
        return "jpeg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if data.startswith((b"GIF87a", b"GIF89a")):
        return "gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    if data.startswith(b"BM") and len(data) >= 14:
        return "bmp"
    if data.startswith((b"II*\x00", b"MM\x00*")):
        return "tiff"
    return None
