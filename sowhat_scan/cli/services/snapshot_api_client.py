"""HTTP client for the snapshot scan functions.

This service provides methods to interact with the snapshot endpoints:
- POST capture-page - Capture a page and return a snapshot id
- POST analyze-snapshot - Queue rule evaluation for a captured snapshot
- GET snapshot-status?snapshotId=... - Poll snapshot status

Capture returns as soon as the page is stored; analysis runs in the
background and is observed by polling the status endpoint. None of these
calls retry on their own.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Optional

import httpx

from ...config.config_manager import ScanClientConfig
from .errors import (
    ScanApiConnectionError,
    ScanApiProtocolError,
    ScanApiRequestError,
    sanitize_error_message,
)
from .models import FAILED, JobHandle, ScanRequest, StatusSnapshot, normalize_status

logger = logging.getLogger(__name__)

CAPTURE_FUNCTION = "capture-page"
ANALYZE_FUNCTION = "analyze-snapshot"
STATUS_FUNCTION = "snapshot-status"


def error_field_message(data: Any) -> Optional[str]:
    """Pull a message out of ``{"error": "..."}`` or ``{"error": {"message": "..."}}``."""
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        return error.get("message") or None
    if error:
        return str(error)
    return None


class FunctionApiClient:
    """Shared transport for the serverless function endpoints.

    Example usage:
        with SnapshotApiClient() as client:
            handle = client.capture_snapshot(ScanRequest("https://example.com"))
            snapshot = client.get_snapshot_status(handle)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        *,
        config: Optional[ScanClientConfig] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the API server. Defaults to SOWHAT_API_URL env var
                     or http://localhost:8888.
            timeout: Request timeout in seconds.
            config: Preloaded settings; read from the environment when omitted.
        """
        if config is None:
            config = ScanClientConfig.from_env(api_url=base_url, http_timeout=timeout)
        elif base_url or timeout is not None:
            config = replace(
                config,
                api_url=base_url or config.api_url,
                http_timeout=timeout if timeout is not None else config.http_timeout,
            )
        self.config = config
        self.base_url = self.config.api_url
        self.timeout = self.config.http_timeout
        self._client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _post(self, function: str, payload: Dict[str, Any]) -> httpx.Response:
        path = self.config.function_path(function)
        return self._send("POST", path, lambda client: client.post(path, json=payload))

    def _get(self, function: str, params: Dict[str, Any]) -> httpx.Response:
        path = self.config.function_path(function)
        return self._send("GET", path, lambda client: client.get(path, params=params))

    def _send(self, method: str, path: str, call) -> httpx.Response:
        try:
            response = call(self._get_client())
        except httpx.ConnectError as exc:
            raise ScanApiConnectionError(
                f"Unable to connect to scan API at {self.base_url}: {exc}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise ScanApiConnectionError(
                f"Request to scan API timed out: {exc}"
            ) from exc
        except httpx.RequestError as exc:
            raise ScanApiConnectionError(f"Scan API request failed: {exc}") from exc

        logger.debug("%s %s -> %s", method, path, response.status_code)
        return response

    @staticmethod
    def _read_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _raise_for_status(response: httpx.Response, data: Any, action: str) -> None:
        """Raise ScanApiRequestError for any non-2xx response."""
        if 200 <= response.status_code < 300:
            return
        detail = error_field_message(data)
        message = detail or f"{action} ({response.status_code})"
        raise ScanApiRequestError(
            sanitize_error_message(message),
            status_code=response.status_code,
            detail=detail,
        )


class SnapshotApiClient(FunctionApiClient):
    """HTTP client for the capture, analyze and status functions."""

    def capture_snapshot(self, request: ScanRequest) -> JobHandle:
        """Capture ``request.url`` and return the handle of the new snapshot.

        Raises:
            ScanApiConnectionError: If unable to reach the API.
            ScanApiRequestError: If the API answers with a non-2xx status.
            ScanApiProtocolError: If the capture failed server side or the
                response carries no snapshot id.
        """
        response = self._post(CAPTURE_FUNCTION, request.to_payload())
        data = self._read_json(response)
        self._raise_for_status(response, data, "Failed to capture page snapshot")

        if not isinstance(data, dict):
            raise ScanApiProtocolError(f"Invalid capture payload from {CAPTURE_FUNCTION}.")

        if normalize_status(data.get("status"), "") == FAILED:
            raise ScanApiProtocolError(
                sanitize_error_message(
                    error_field_message(data),
                    "Unable to capture page snapshot.",
                )
            )

        snapshot_id = data.get("snapshotId")
        if not snapshot_id:
            raise ScanApiProtocolError(
                f"{CAPTURE_FUNCTION} response is missing snapshotId."
            )

        handle = JobHandle(job_id=str(snapshot_id), status=normalize_status(data.get("status")))
        if data.get("queueWarning"):
            logger.debug("Capture queue warning for %s: %s", handle.job_id, data["queueWarning"])
        return handle

    def queue_analysis(
        self,
        handle: JobHandle,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Ask the API to queue analysis of a captured snapshot.

        Repeating this call for the same snapshot is harmless: the API
        re-queues a captured snapshot and reports completion for a finished one.
        """
        payload = {"snapshotId": handle.job_id, "options": options or {}}
        response = self._post(ANALYZE_FUNCTION, payload)
        data = self._read_json(response)
        self._raise_for_status(response, data, "Failed to queue snapshot analysis")

        if not isinstance(data, dict):
            raise ScanApiProtocolError(f"Invalid analyze payload from {ANALYZE_FUNCTION}.")

        if normalize_status(data.get("status"), "") == FAILED:
            raise ScanApiProtocolError(
                sanitize_error_message(
                    error_field_message(data),
                    "Unable to queue snapshot analysis.",
                )
            )
        return data

    def get_snapshot_status(self, handle: JobHandle) -> StatusSnapshot:
        """Get the current status of a snapshot.

        A ``failed`` status is returned as a snapshot, not raised; deciding
        what a failed scan means is the caller's job.
        """
        response = self._get(STATUS_FUNCTION, {"snapshotId": handle.job_id})
        data = self._read_json(response)
        self._raise_for_status(response, data, "Failed to read snapshot status")

        if not isinstance(data, dict):
            raise ScanApiProtocolError(f"Invalid status payload from {STATUS_FUNCTION}.")

        return StatusSnapshot.from_dict(data, job_id=handle.job_id)
