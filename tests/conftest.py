"""
Pytest configuration and fixtures
"""
from typing import Any, Dict, List, Optional

import pytest

from sowhat_scan.cli.services.cancellation import CancellationToken
from sowhat_scan.cli.services.models import JobHandle, StatusSnapshot
from sowhat_scan.config.config_manager import ScanClientConfig


class InstantToken(CancellationToken):
    """Cancellation token whose sleeps return at once but still honour cancel()."""

    def __init__(self, cancel_after_sleeps: Optional[int] = None) -> None:
        super().__init__()
        self.sleeps: List[float] = []
        self._cancel_after = cancel_after_sleeps

    def sleep(self, seconds: float) -> None:
        self.raise_if_cancelled()
        self.sleeps.append(seconds)
        if self._cancel_after is not None and len(self.sleeps) >= self._cancel_after:
            self.cancel()
        self.raise_if_cancelled()


class FakeSnapshotClient:
    """Scripted stand-in for SnapshotApiClient.

    ``statuses`` are status payloads returned in order; the last one repeats.
    """

    def __init__(
        self,
        statuses: List[Dict[str, Any]],
        *,
        handle: Optional[JobHandle] = None,
        capture_error: Optional[Exception] = None,
        queue_error: Optional[Exception] = None,
        status_error: Optional[Exception] = None,
    ) -> None:
        self.statuses = list(statuses)
        self.handle = handle or JobHandle(job_id="abc", status="captured")
        self.capture_error = capture_error
        self.queue_error = queue_error
        self.status_error = status_error
        self.calls: List[str] = []
        self.capture_requests: List[Any] = []
        self.queue_options: List[Any] = []

    @property
    def queue_calls(self) -> int:
        return self.calls.count("queue")

    @property
    def status_calls(self) -> int:
        return self.calls.count("status")

    def capture_snapshot(self, request):
        self.calls.append("capture")
        self.capture_requests.append(request)
        if self.capture_error is not None:
            raise self.capture_error
        return self.handle

    def queue_analysis(self, handle, options=None):
        self.calls.append("queue")
        self.queue_options.append(options)
        if self.queue_error is not None:
            raise self.queue_error
        return {"snapshotId": handle.job_id, "status": "queued"}

    def get_snapshot_status(self, handle):
        self.calls.append("status")
        if self.status_error is not None:
            raise self.status_error
        data = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return StatusSnapshot.from_dict(data, job_id=handle.job_id)


class FakeWcagClient:
    """Scripted stand-in for WcagJobApiClient."""

    def __init__(self, started: Dict[str, Any], statuses: List[Dict[str, Any]]) -> None:
        self.started = started
        self.statuses = list(statuses)
        self.payloads: List[Dict[str, Any]] = []
        self.status_calls = 0

    def start_job(self, payload):
        self.payloads.append(payload)
        return StatusSnapshot.from_dict(
            self.started, job_id=self.started["jobId"], default_status="queued"
        )

    def get_job_status(self, handle):
        self.status_calls += 1
        data = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return StatusSnapshot.from_dict(data, job_id=handle.job_id, default_status="queued")


@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch):
    """Keep a developer's local .env out of the tests."""
    monkeypatch.setattr("sowhat_scan.config.config_manager.load_dotenv", lambda *a, **k: False)


@pytest.fixture
def config() -> ScanClientConfig:
    return ScanClientConfig(api_url="http://test")


@pytest.fixture
def instant_token() -> InstantToken:
    return InstantToken()
