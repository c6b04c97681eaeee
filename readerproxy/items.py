"""Pydantic models for requests, responses and error records."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from readerproxy import settings
from readerproxy.errors import ErrorKind

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class FetchRequest(BaseModel):
    """One fetch-and-extract call."""

    url: str
    extract_main: bool = True
    timeout_ms: int = Field(default=settings.FETCH_TIMEOUT_MS, gt=0)
    max_redirects: int = Field(default=settings.MAX_REDIRECTS, ge=0)

    @field_validator("url", mode="before")
    @classmethod
    def strip_url(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class FetchResponse(BaseModel):
    """Successful ``/api/fetch`` payload."""

    success: bool = True
    html: str = ""
    url: str = ""
    title: str = ""
    # False when the raw page was returned instead of extracted content
    extracted: bool = False

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v or ""


class ErrorRecord(BaseModel):
    """Structured description of a failed request."""

    kind: ErrorKind
    message: str
    detail: str = ""
    status: int | None = None
    reason: str | None = None

    def to_payload(self, *, include_detail: bool = True) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if include_detail:
            payload["details"] = self.detail
        return payload


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str
