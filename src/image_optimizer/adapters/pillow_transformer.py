"""Pillow-backed WebP transformer."""

import logging
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from image_optimizer.domain.errors import TransformError
from image_optimizer.services.transform import Transformer

_logger = logging.getLogger(__name__)


def fit_within(
    width: int, height: int, max_width: int, max_height: int
) -> tuple[int, int]:
    """Scale dimensions down to fit the bounding box, preserving aspect ratio."""
    if width <= max_width and height <= max_height:
        return width, height
    ratio = min(max_width / width, max_height / height)
    new_width = max(1, round(width * ratio))
    new_height = max(1, round(height * ratio))
    return new_width, new_height


@dataclass
class PillowWebpTransformer(Transformer):
    """Resize oversized images and re-encode them as WebP."""

    max_width: int = 2048
    max_height: int = 2048
    quality: int = 75

    def transform(self, data: bytes) -> bytes:
        """Decode, resize if needed and encode to WebP."""
        try:
            with Image.open(BytesIO(data)) as source:
                source.load()
                image = _normalize_mode(source)
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            ValueError,
        ) as exc:
            raise TransformError("Invalid image data") from exc

        width, height = image.size
        new_size = fit_within(width, height, self.max_width, self.max_height)
        if new_size != (width, height):
            _logger.debug(
                "Resizing image from %sx%s to %sx%s", width, height, *new_size
            )
            image = image.resize(new_size, Image.Resampling.BILINEAR)

        buffer = BytesIO()
        try:
            image.save(buffer, format="WEBP", quality=self.quality)
        except (OSError, ValueError) as exc:
            raise TransformError("WebP encoding failed") from exc
        return buffer.getvalue()


def _normalize_mode(image: Image.Image) -> Image.Image:
    """Convert to a mode the WebP encoder accepts."""
    has_alpha = image.mode in {"RGBA", "LA", "PA"} or (
        image.mode == "P" and "transparency" in image.info
    )
    return image.convert("RGBA" if has_alpha else "RGB")
