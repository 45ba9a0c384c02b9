"""Response models for the HTTP API."""

from pydantic import BaseModel, ConfigDict


class FileRecordResponse(BaseModel):
    """Per-file outcome returned by the optimize and rename endpoints."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    filename: str
    original_size: int
    optimized_size: int
    compression_ratio: float
    download_url: str
    session_id: str


class SessionSummary(BaseModel):
    """One top-level entry of the output store."""

    session_id: str | None
    is_session: bool
    files: list[str]


class SessionListResponse(BaseModel):
    """Listing of every session and loose file in the store."""

    sessions: list[SessionSummary]
