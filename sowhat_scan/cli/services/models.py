"""Value types exchanged between the scan client and its callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

CAPTURED = "captured"
QUEUED = "queued"
RUNNING = "running"
COMPLETE = "complete"
FAILED = "failed"

TERMINAL_STATUSES = frozenset({COMPLETE, FAILED})

DEFAULT_CAPTURE_TIMEOUT_MS = 8000


def normalize_status(value: Any, default: str = CAPTURED) -> str:
    """Lower-case a collaborator status label, substituting ``default`` when blank."""
    text = str(value or "").strip().lower()
    return text or default


@dataclass
class ScanRequest:
    """Caller supplied input for a snapshot scan.

    ``options`` is handed to the scan engine untouched; only ``url`` is
    checked, and only for being present.
    """

    url: str
    timeout_ms: int = DEFAULT_CAPTURE_TIMEOUT_MS
    options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.url or not str(self.url).strip():
            raise ValueError("ScanRequest.url must be a non-empty string")
        self.url = str(self.url).strip()

    def to_payload(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "timeoutMs": self.timeout_ms,
            "options": self.options,
        }


@dataclass(frozen=True)
class JobHandle:
    """Identifier and initial status of one in-flight scan."""

    job_id: str
    status: str = CAPTURED


@dataclass
class ScanProgress:
    """Progress information for a running scan."""

    percent: Optional[float] = None
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ScanProgress"]:
        if not isinstance(data, dict):
            return None
        percent = data.get("percent")
        try:
            percent = float(percent) if percent is not None else None
        except (TypeError, ValueError):
            percent = None
        message = data.get("message")
        return cls(percent=percent, message=str(message) if message else None)


@dataclass
class ScanError:
    """Error information for a failed scan."""

    message: str
    code: Optional[str] = None

    @classmethod
    def from_value(cls, data: Any) -> Optional["ScanError"]:
        if not data:
            return None
        if isinstance(data, str):
            return cls(message=data)
        if isinstance(data, dict):
            message = data.get("message") or data.get("error") or ""
            code = data.get("code")
            return cls(message=str(message), code=str(code) if code else None)
        return cls(message=str(data))


@dataclass
class StatusSnapshot:
    """One observation of a scan job's state."""

    job_id: str
    status: str
    progress: Optional[ScanProgress] = None
    result: Optional[Any] = None
    error: Optional[ScanError] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        *,
        job_id: str,
        default_status: str = CAPTURED,
    ) -> "StatusSnapshot":
        """Create from a status endpoint payload.

        The payload may omit its own identifier, so the id the caller polled
        for is used as the fallback.
        """
        reported_id = data.get("snapshotId") or data.get("jobId")
        return cls(
            job_id=str(reported_id or job_id),
            status=normalize_status(data.get("status"), default_status),
            progress=ScanProgress.from_dict(data.get("progress")),
            result=data.get("result"),
            error=ScanError.from_value(data.get("error")),
            raw=dict(data),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_complete(self) -> bool:
        return self.status == COMPLETE

    @property
    def is_failed(self) -> bool:
        return self.status == FAILED

    @property
    def failure_message(self) -> Optional[str]:
        """Best available human message for a failed snapshot."""
        if self.error and self.error.message:
            return self.error.message
        if self.progress and self.progress.message:
            return self.progress.message
        return None
