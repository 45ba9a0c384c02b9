"""Domain models for downloadable archives."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Archive:
    """A built ZIP bundle ready to be served."""

    filename: str
    content: bytes
    file_count: int
