"""Domain errors raised by image optimizer services."""


class ImageOptimizerError(Exception):
    """Base error for the image optimizer."""


class SessionStorageError(ImageOptimizerError):
    """Raised when the session store cannot be prepared or enumerated."""


class NoFilesProcessedError(ImageOptimizerError):
    """Raised when a batch produced no outputs."""

    def __init__(self, message: str = "No images were successfully processed") -> None:
        super().__init__(message)


class NoMatchingFilesError(ImageOptimizerError):
    """Raised when an archive has nothing to include."""

    def __init__(
        self, message: str = "No images found to include in ZIP file"
    ) -> None:
        super().__init__(message)


class TransformError(ImageOptimizerError):
    """Raised when a single image cannot be transformed."""
