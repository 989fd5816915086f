"""HTTP client for the stem separation service.

Songs with a YouTube video can have their vocals and instrumental stems
extracted by a separate separation service. This client submits jobs,
polls them and parses results; the service itself lives elsewhere.
"""

import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from worship_chords.errors import ServiceError
from worship_chords.logging_config import get_logger

logger = get_logger(__name__)


class SeparationServiceError(ServiceError):
    """Error communicating with the separation service."""


@dataclass
class SeparationJob:
    """State of a separation job.

    Attributes:
        job_id: Unique job identifier
        status: queued|processing|completed|failed
        progress: Progress fraction (0.0-1.0)
        stage: Current processing stage
        error_message: Error message if failed
        vocals_url: URL of the vocals stem once completed
        instrumental_url: URL of the instrumental stem once completed
    """

    job_id: str
    status: str
    progress: float = 0.0
    stage: str = ""
    error_message: Optional[str] = None
    vocals_url: Optional[str] = None
    instrumental_url: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.status in ("completed", "failed")


class SeparationClient:
    """HTTP client for the separation service API.

    Uses Bearer token authentication via the WC_SEPARATION_API_KEY
    environment variable.

    Attributes:
        base_url: Base URL of the separation service
        timeout: Request timeout in seconds
    """

    def __init__(self, base_url: str, timeout: int = 30):
        """Initialize the client.

        Args:
            base_url: Base URL of the separation service
            timeout: Request timeout in seconds

        Raises:
            ValueError: If WC_SEPARATION_API_KEY environment variable is not set
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self._api_key = os.environ.get("WC_SEPARATION_API_KEY")
        if not self._api_key:
            raise ValueError(
                "WC_SEPARATION_API_KEY environment variable is not set. "
                "Set it to your separation service API key."
            )

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    def _request(self, method: str, path: str, action: str, **kwargs) -> Dict[str, Any]:
        try:
            response = requests.request(
                method,
                f"{self.base_url}{path}",
                headers=self._auth_headers(),
                timeout=self.timeout,
                **kwargs,
            )

            if response.status_code == 401:
                raise SeparationServiceError("Authentication failed: Invalid API key", status_code=401)
            if response.status_code == 404:
                raise SeparationServiceError(f"{action} failed: not found", status_code=404)

            response.raise_for_status()
            return response.json()

        except requests.exceptions.ConnectionError as e:
            raise SeparationServiceError(f"Cannot connect to separation service at {self.base_url}: {e}")
        except requests.exceptions.RequestException as e:
            if getattr(e, "response", None) is not None:
                status = e.response.status_code
                raise SeparationServiceError(f"{action} failed (HTTP {status}): {e}", status_code=status)
            raise SeparationServiceError(f"{action} failed: {e}")

    def submit(self, source_url: str, song_id: Optional[str] = None) -> SeparationJob:
        """Submit a source (e.g., a YouTube URL) for vocal separation.

        Raises:
            SeparationServiceError: If submission fails
        """
        payload = {"source_url": source_url, "stems": ["vocals", "instrumental"]}
        if song_id:
            payload["reference"] = song_id
        data = self._request("POST", "/api/v1/jobs/separate", "Separation submission", json=payload)
        return self._parse_job_response(data)

    def get_job(self, job_id: str) -> SeparationJob:
        """Get the current state of a job.

        Raises:
            SeparationServiceError: If the job is unknown or the request fails
        """
        data = self._request("GET", f"/api/v1/jobs/{job_id}", "Job status lookup")
        return self._parse_job_response(data)

    def wait_for_completion(
        self,
        job_id: str,
        poll_interval: float = 3.0,
        timeout: float = 900.0,
        callback: Optional[Callable[[SeparationJob], None]] = None,
    ) -> SeparationJob:
        """Poll a job until it completes or fails.

        Args:
            job_id: Unique job identifier
            poll_interval: Seconds between polls
            timeout: Maximum seconds to wait
            callback: Called with each polled job state

        Returns:
            Final job state

        Raises:
            SeparationServiceError: If the job fails or the wait times out
        """
        deadline = time.monotonic() + timeout
        while True:
            job = self.get_job(job_id)
            if callback:
                callback(job)
            if job.status == "completed":
                return job
            if job.status == "failed":
                raise SeparationServiceError(f"Separation failed: {job.error_message or 'unknown error'}")
            if time.monotonic() >= deadline:
                raise SeparationServiceError(f"Timed out waiting for job {job_id}")
            time.sleep(poll_interval)

    @staticmethod
    def _parse_job_response(data: Dict[str, Any]) -> SeparationJob:
        result = data.get("result") or {}
        return SeparationJob(
            job_id=data["job_id"],
            status=data.get("status", "queued"),
            progress=data.get("progress", 0.0),
            stage=data.get("stage", ""),
            error_message=data.get("error_message"),
            vocals_url=result.get("vocals_url"),
            instrumental_url=result.get("instrumental_url"),
        )
