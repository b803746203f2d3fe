"""HTTP client for the multi-page WCAG scan job functions.

- POST start-wcag-scan - Create a job and dispatch it in the background
- GET wcag-scan-status?jobId=... - Poll job status
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from .errors import ScanApiProtocolError
from .models import QUEUED, JobHandle, StatusSnapshot
from .snapshot_api_client import FunctionApiClient, error_field_message

logger = logging.getLogger(__name__)

START_FUNCTION = "start-wcag-scan"
STATUS_FUNCTION = "wcag-scan-status"


class WcagJobApiClient(FunctionApiClient):
    """HTTP client for the WCAG job endpoints."""

    def start_job(self, payload: Dict[str, Any]) -> StatusSnapshot:
        """Create a scan job.

        The start response is returned as a snapshot because the API reports
        dispatch failures in-band (``status: failed`` plus an ``error``) while
        still assigning a job id.
        """
        response = self._post(START_FUNCTION, payload)
        data = self._read_json(response)
        self._raise_for_status(response, data, "Failed to start WCAG scan")

        if not isinstance(data, dict) or not data.get("jobId"):
            raise ScanApiProtocolError(
                error_field_message(data) or "Failed to start WCAG scan job."
            )

        started = StatusSnapshot.from_dict(data, job_id=str(data["jobId"]), default_status=QUEUED)
        logger.debug("Started WCAG job %s with status %s", started.job_id, started.status)
        return started

    def get_job_status(self, handle: JobHandle) -> StatusSnapshot:
        response = self._get(STATUS_FUNCTION, {"jobId": handle.job_id})
        data = self._read_json(response)
        self._raise_for_status(response, data, "Failed to read WCAG scan status")

        if not isinstance(data, dict):
            raise ScanApiProtocolError(f"Invalid status payload from {STATUS_FUNCTION}.")

        return StatusSnapshot.from_dict(data, job_id=handle.job_id, default_status=QUEUED)
