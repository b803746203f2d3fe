from __future__ import annotations

import re
from typing import Any, Optional

DEFAULT_ERROR_MESSAGE = "Scan failed."

_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_error_message(value: Any, fallback: str = DEFAULT_ERROR_MESSAGE) -> str:
    """Collapse whitespace runs so messages render on a single line."""
    text = str(value) if value else ""
    cleaned = _WHITESPACE_RE.sub(" ", text).strip()
    if not cleaned:
        cleaned = _WHITESPACE_RE.sub(" ", fallback).strip()
    return cleaned


class ScanApiClientError(Exception):
    """Base exception for scan client errors."""

    def __init__(self, message: str) -> None:
        super().__init__(sanitize_error_message(message))


class ScanApiRequestError(ScanApiClientError):
    """Raised when a collaborator answers with a non-success HTTP status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class ScanApiConnectionError(ScanApiRequestError):
    """Raised when the request never produced an HTTP response."""


class ScanApiProtocolError(ScanApiClientError):
    """Raised when a response is malformed or breaks the endpoint contract."""


class ScanJobFailedError(ScanApiClientError):
    """Raised when the collaborator reports that the scan itself failed."""

    def __init__(
        self,
        message: str,
        job_id: Optional[str] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.job_id = job_id
        self.code = code


class ScanCancelledError(ScanApiClientError):
    """Raised when the caller cancels a scan that is still in flight."""

    def __init__(self, message: str = "The operation was aborted.") -> None:
        super().__init__(message)
