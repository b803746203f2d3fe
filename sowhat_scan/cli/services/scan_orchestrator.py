"""Drive server-side scans to a terminal outcome.

A scan is started, then polled at a fixed interval until the API reports
``complete`` or ``failed``. Every poll is forwarded to the caller's progress
callback in the order observed. A run ends in exactly one of three ways:
the result is returned, ScanJobFailedError / a request or protocol error is
raised, or ScanCancelledError is raised after the caller cancels.

There is no overall deadline here; callers that need one cancel the token
from a timer.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Any, Callable, Dict, Iterable, Optional

from ...config.config_manager import ScanClientConfig
from .cancellation import CancellationToken
from .errors import (
    ScanApiClientError,
    ScanApiProtocolError,
    ScanJobFailedError,
    sanitize_error_message,
)
from .models import QUEUED, JobHandle, ScanProgress, ScanRequest, StatusSnapshot
from .snapshot_api_client import SnapshotApiClient
from .wcag_job_client import WcagJobApiClient

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.5
MIN_POLL_INTERVAL = 0.75
CAPTURED_PROGRESS_PERCENT = 12.0
SNAPSHOT_FAILED_MESSAGE = "Snapshot analysis failed."
WCAG_FAILED_MESSAGE = "WCAG scan job failed."

ProgressCallback = Callable[[StatusSnapshot], None]


def resolve_poll_interval(value: Any, default: float = DEFAULT_POLL_INTERVAL) -> float:
    """Coerce a requested interval.

    Missing, zero or non-numeric values use ``default``; anything else,
    negative values included, is floored at 0.75s and capped at
    ``threading.TIMEOUT_MAX``.
    """
    try:
        interval = float(value)
    except (TypeError, ValueError):
        interval = 0.0
    if interval == 0 or math.isnan(interval):
        interval = default
    return min(threading.TIMEOUT_MAX, max(MIN_POLL_INTERVAL, interval))


class ScanOrchestrator:
    """
    Run snapshot scans and WCAG job scans from start to finish.

    Usage:
        with SnapshotApiClient() as snapshots:
            orchestrator = ScanOrchestrator(snapshot_client=snapshots)
            result = orchestrator.run_scan(
                ScanRequest("https://example.com"),
                cancel_token=token,
                on_progress=print,
            )

    ``redispatch_statuses`` lists the status labels that make the
    orchestrator re-issue the analyze call once per run, covering an
    enqueue that the API silently dropped.
    """

    def __init__(
        self,
        snapshot_client: Optional[SnapshotApiClient] = None,
        wcag_client: Optional[WcagJobApiClient] = None,
        *,
        config: Optional[ScanClientConfig] = None,
        redispatch_statuses: Optional[Iterable[str]] = None,
    ) -> None:
        self.config = config or ScanClientConfig.from_env()
        self.snapshot_client = snapshot_client
        self.wcag_client = wcag_client
        statuses = (
            redispatch_statuses
            if redispatch_statuses is not None
            else self.config.redispatch_statuses
        )
        self.redispatch_statuses = frozenset(str(s).strip().lower() for s in statuses)

    def run_scan(
        self,
        request: ScanRequest,
        *,
        cancel_token: Optional[CancellationToken] = None,
        poll_interval: Optional[float] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Any:
        """Capture ``request.url``, queue analysis and poll until it finishes.

        Returns:
            The ``result`` payload of the completed snapshot.

        Raises:
            ScanApiRequestError: A call failed at the HTTP level (the advisory
                analyze calls excepted).
            ScanApiProtocolError: A response broke the endpoint contract.
            ScanJobFailedError: The API reported the scan as failed.
            ScanCancelledError: ``cancel_token`` fired before completion.
        """
        if self.snapshot_client is None:
            raise ValueError("run_scan requires a snapshot_client")
        token = cancel_token or CancellationToken()
        interval = resolve_poll_interval(poll_interval, self.config.poll_interval)
        client = self.snapshot_client

        token.raise_if_cancelled()
        handle = client.capture_snapshot(request)
        logger.info("Captured snapshot %s for %s", handle.job_id, request.url)

        self._emit(
            on_progress,
            StatusSnapshot(
                job_id=handle.job_id,
                status=handle.status,
                progress=ScanProgress(percent=CAPTURED_PROGRESS_PERCENT, message="Snapshot captured"),
            ),
        )

        token.raise_if_cancelled()
        self._queue_analysis_advisory(handle, request.options)
        token.raise_if_cancelled()

        redispatched = False

        def _on_pending(snapshot: StatusSnapshot) -> None:
            nonlocal redispatched
            if redispatched or snapshot.status not in self.redispatch_statuses:
                return
            redispatched = True
            logger.info("Snapshot %s still %s, re-queueing analysis", handle.job_id, snapshot.status)
            self._queue_analysis_advisory(handle, request.options)

        return self._poll_until_terminal(
            handle,
            lambda: client.get_snapshot_status(handle),
            token=token,
            interval=interval,
            on_progress=on_progress,
            on_pending=_on_pending,
            failure_fallback=SNAPSHOT_FAILED_MESSAGE,
        )

    def run_wcag_scan(
        self,
        payload: Dict[str, Any],
        *,
        cancel_token: Optional[CancellationToken] = None,
        poll_interval: Optional[float] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Any:
        """Start a WCAG job and poll it until it finishes.

        The job is dispatched server side, so no analyze call is made.
        """
        if self.wcag_client is None:
            raise ValueError("run_wcag_scan requires a wcag_client")
        token = cancel_token or CancellationToken()
        interval = resolve_poll_interval(poll_interval, self.config.poll_interval)
        client = self.wcag_client

        token.raise_if_cancelled()
        started = client.start_job(payload)
        handle = JobHandle(job_id=started.job_id, status=started.status or QUEUED)
        logger.info("Started WCAG job %s", handle.job_id)

        self._emit(
            on_progress,
            StatusSnapshot(
                job_id=handle.job_id,
                status=handle.status,
                progress=ScanProgress(percent=0.0, message="Queued for processing."),
                raw=started.raw,
            ),
        )

        if started.is_failed:
            raise ScanJobFailedError(
                sanitize_error_message(
                    started.error.message if started.error else None,
                    "WCAG scan job failed to start.",
                ),
                job_id=handle.job_id,
                code=started.error.code if started.error else None,
            )

        return self._poll_until_terminal(
            handle,
            lambda: client.get_job_status(handle),
            token=token,
            interval=interval,
            on_progress=on_progress,
        )

    def _poll_until_terminal(
        self,
        handle: JobHandle,
        poll: Callable[[], StatusSnapshot],
        *,
        token: CancellationToken,
        interval: float,
        on_progress: Optional[ProgressCallback],
        on_pending: Optional[Callable[[StatusSnapshot], None]] = None,
        failure_fallback: str = WCAG_FAILED_MESSAGE,
    ) -> Any:
        polls = 0
        while True:
            token.raise_if_cancelled()
            token.sleep(interval)

            snapshot = poll()
            polls += 1
            token.raise_if_cancelled()
            logger.debug("Poll %d for %s: %s", polls, handle.job_id, snapshot.status)
            self._emit(on_progress, snapshot)

            if snapshot.is_complete:
                if snapshot.result is None:
                    raise ScanApiProtocolError("Scan completed but no result payload was returned.")
                logger.info("Scan %s complete after %d polls", handle.job_id, polls)
                return snapshot.result

            if snapshot.is_failed:
                logger.info("Scan %s failed after %d polls", handle.job_id, polls)
                raise ScanJobFailedError(
                    sanitize_error_message(snapshot.failure_message, failure_fallback),
                    job_id=handle.job_id,
                    code=snapshot.error.code if snapshot.error else None,
                )

            if on_pending is not None:
                on_pending(snapshot)

    def _queue_analysis_advisory(self, handle: JobHandle, options: Dict[str, Any]) -> None:
        """Queue analysis, logging instead of raising on failure.

        Polling decides the outcome of the run, so a failed enqueue here only
        delays it.
        """
        try:
            self.snapshot_client.queue_analysis(handle, options)
        except ScanApiClientError as exc:
            logger.warning("Queueing analysis for %s failed: %s", handle.job_id, exc)

    @staticmethod
    def _emit(on_progress: Optional[ProgressCallback], snapshot: StatusSnapshot) -> None:
        if on_progress is None:
            return
        try:
            on_progress(snapshot)
        except Exception:
            logger.warning("Progress callback raised for %s", snapshot.job_id, exc_info=True)


def run_scan(
    request: ScanRequest,
    *,
    cancel_token: Optional[CancellationToken] = None,
    poll_interval: Optional[float] = None,
    on_progress: Optional[ProgressCallback] = None,
    config: Optional[ScanClientConfig] = None,
) -> Any:
    """Run one snapshot scan with a client that is closed afterwards."""
    config = config or ScanClientConfig.from_env()
    with SnapshotApiClient(config=config) as client:
        orchestrator = ScanOrchestrator(snapshot_client=client, config=config)
        return orchestrator.run_scan(
            request,
            cancel_token=cancel_token,
            poll_interval=poll_interval,
            on_progress=on_progress,
        )


def run_wcag_scan(
    payload: Dict[str, Any],
    *,
    cancel_token: Optional[CancellationToken] = None,
    poll_interval: Optional[float] = None,
    on_progress: Optional[ProgressCallback] = None,
    config: Optional[ScanClientConfig] = None,
) -> Any:
    """Run one WCAG job scan with a client that is closed afterwards."""
    config = config or ScanClientConfig.from_env()
    with WcagJobApiClient(config=config) as client:
        orchestrator = ScanOrchestrator(wcag_client=client, config=config)
        return orchestrator.run_wcag_scan(
            payload,
            cancel_token=cancel_token,
            poll_interval=poll_interval,
            on_progress=on_progress,
        )
