"""Client services for driving server-side scans."""

from .cancellation import CancellationToken
from .errors import (
    ScanApiClientError,
    ScanApiConnectionError,
    ScanApiProtocolError,
    ScanApiRequestError,
    ScanCancelledError,
    ScanJobFailedError,
)
from .models import JobHandle, ScanError, ScanProgress, ScanRequest, StatusSnapshot
from .scan_orchestrator import ScanOrchestrator, run_scan, run_wcag_scan
from .snapshot_api_client import SnapshotApiClient
from .wcag_job_client import WcagJobApiClient

__all__ = [
    "CancellationToken",
    "JobHandle",
    "ScanApiClientError",
    "ScanApiConnectionError",
    "ScanApiProtocolError",
    "ScanApiRequestError",
    "ScanCancelledError",
    "ScanError",
    "ScanJobFailedError",
    "ScanOrchestrator",
    "ScanProgress",
    "ScanRequest",
    "SnapshotApiClient",
    "StatusSnapshot",
    "WcagJobApiClient",
    "run_scan",
    "run_wcag_scan",
]
