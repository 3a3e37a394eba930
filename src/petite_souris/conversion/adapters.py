import json
import logging
import time
from typing import Any

import requests

from ..errors import (
    DownloadError,
    ExportError,
    JobCreationError,
    RemoteServiceError,
    RemoteTimeoutError,
    UploadError,
)
from .interfaces import RemoteConverter

logger = logging.getLogger(__name__)

API_URL = "https://api.cloudconvert.com/v2"
SANDBOX_API_URL = "https://api.sandbox.cloudconvert.com/v2"

TERMINAL_JOB_STATES = {"finished", "error"}


class CloudConvertClient(RemoteConverter):
    """Runs one conversion as a CloudConvert job: import/upload, convert, export/url."""

    IMPORT_TASK = "upload-file"
    CONVERT_TASK = "convert-file"
    EXPORT_TASK = "export-file"

    def __init__(
        self,
        api_key: str,
        *,
        sandbox: bool = False,
        wait_timeout: float = 300.0,
        poll_interval: float = 2.0,
        request_timeout: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self._api_key = api_key
        self._base = SANDBOX_API_URL if sandbox else API_URL
        self._wait_timeout = wait_timeout
        self._poll_interval = poll_interval
        self._request_timeout = request_timeout
        self._session = session or requests.Session()

    def convert(self, data: bytes, input_format: str, output_format: str) -> bytes:
        job = self.create_job(output_format)
        job_id = str(job["id"])
        try:
            # The upload form needs a filename whose extension matches the input format
            self.upload(self._task(job, self.IMPORT_TASK), data, f"file.{input_format}")
            finished = self.wait(job_id)
            url = self.export_url(finished)
            return self.download(url)
        finally:
            self.delete_job(job_id)

    # Remote job steps

    def create_job(self, output_format: str) -> dict[str, Any]:
        payload = {
            "tasks": {
                self.IMPORT_TASK: {"operation": "import/upload"},
                self.CONVERT_TASK: {
                    "operation": "convert",
                    "input": self.IMPORT_TASK,
                    "output_format": output_format,
                },
                self.EXPORT_TASK: {"operation": "export/url", "input": self.CONVERT_TASK},
            }
        }
        resp = self._call("POST", f"{self._base}/jobs", JobCreationError, "Job creation", json=payload)
        job = _data(resp, JobCreationError, "Job creation")
        logger.info("Created CloudConvert job %s (output %s)", job["id"], output_format)
        return job

    def upload(self, task: dict[str, Any], data: bytes, filename: str) -> None:
        form = (task.get("result") or {}).get("form") or {}
        if not form.get("url"):
            raise UploadError("Upload task not found")
        self._call(
            "POST",
            form["url"],
            UploadError,
            "Upload",
            authenticated=False,
            data=form.get("parameters") or {},
            files={"file": (filename, data)},
        )
        logger.debug("Uploaded %d bytes as %s", len(data), filename)

    def wait(self, job_id: str) -> dict[str, Any]:
        """Poll the job until it is finished or failed, or the wait timeout runs out."""
        deadline = time.monotonic() + self._wait_timeout
        while True:
            job = self.get_job(job_id)
            status = job.get("status")
            logger.debug("Job %s status: %s", job_id, status)
            if status in TERMINAL_JOB_STATES:
                return job
            if time.monotonic() >= deadline:
                raise RemoteTimeoutError(job_id, self._wait_timeout)
            time.sleep(self._poll_interval)

    def get_job(self, job_id: str) -> dict[str, Any]:
        resp = self._call("GET", f"{self._base}/jobs/{job_id}", RemoteServiceError, "Job status check")
        return _data(resp, RemoteServiceError, "Job status check")

    def export_url(self, job: dict[str, Any]) -> str:
        export = next(
            (
                t
                for t in job.get("tasks", [])
                if t.get("name") == self.EXPORT_TASK and t.get("status") == "finished"
            ),
            None,
        )
        files = ((export or {}).get("result") or {}).get("files") or []
        url = files[0].get("url") if files else None
        if not url:
            logger.error("Job details: %s", json.dumps(job, indent=2))
            failures = [
                f"{t.get('name')}: {t.get('message')}"
                for t in job.get("tasks", [])
                if t.get("status") == "error" and t.get("message")
            ]
            message = "Export task failed or file URL not found"
            if failures:
                message += " (" + "; ".join(failures) + ")"
            raise ExportError(message)
        return url

    def download(self, url: str) -> bytes:
        try:
            resp = self._session.get(url, timeout=self._request_timeout)
        except requests.RequestException as e:
            raise DownloadError(f"Failed to download converted file: {e}") from e
        if not resp.ok:
            raise DownloadError(f"Failed to download converted file: {resp.reason}")
        return resp.content

    def delete_job(self, job_id: str) -> None:
        try:
            self._call("DELETE", f"{self._base}/jobs/{job_id}", RemoteServiceError, "Job deletion")
        except RemoteServiceError as e:
            # The conversion itself is already settled
            logger.warning("Failed to delete job %s: %s", job_id, e)
        else:
            logger.debug("Deleted job %s", job_id)

    # Helpers

    @staticmethod
    def _task(job: dict[str, Any], name: str) -> dict[str, Any]:
        for task in job.get("tasks", []):
            if task.get("name") == name:
                return task
        raise UploadError("Upload task not found")

    def _call(
        self,
        method: str,
        url: str,
        error_cls: type[RemoteServiceError],
        action: str,
        *,
        authenticated: bool = True,
        **kwargs: Any,
    ) -> requests.Response:
        headers = {"Authorization": f"Bearer {self._api_key}"} if authenticated else None
        try:
            resp = self._session.request(method, url, headers=headers, timeout=self._request_timeout, **kwargs)
        except requests.RequestException as e:
            raise error_cls(f"{action} failed: {e}") from e
        if not resp.ok:
            raise error_cls(f"{action} failed: {_remote_message(resp)} (HTTP {resp.status_code})")
        return resp


def _remote_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.reason or resp.text
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.reason or resp.text


def _data(resp: requests.Response, error_cls: type[RemoteServiceError], action: str) -> dict[str, Any]:
    """Unwrap the `data` object of a CloudConvert job response."""
    try:
        data = resp.json()["data"]
    except (ValueError, KeyError, TypeError) as e:
        raise error_cls(f"{action} failed: unexpected response") from e
    if not isinstance(data, dict) or "id" not in data:
        raise error_cls(f"{action} failed: unexpected response")
    return data
