"""
Client-side upload queue.

Files are accepted into an ordered queue, then converted one at a time through
the gateway. Only one conversion is ever in flight per queue so that a batch of
uploads never floods the remote conversion service. Failures stay on the job
that caused them and the rest of the queue keeps going.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Callable, Protocol

from . import formats
from .conversion.interfaces import ConvertedFile
from .conversion.service import DEFAULT_MAX_UPLOAD_BYTES
from .errors import FileTooLargeError, IdenticalFormatError, UnsupportedFormatError

logger = logging.getLogger(__name__)


class JobStatus:
    IDLE = "idle"
    UPLOADING = "uploading"
    CONVERTING = "converting"
    SUCCESS = "success"
    ERROR = "error"


class Converter(Protocol):
    def convert(self, filename: str, data: bytes, output_format: str) -> ConvertedFile:
        ...


class ResultHandle:
    """Owns the bytes of a converted file until it is released."""

    def __init__(self, converted: ConvertedFile) -> None:
        self._converted: ConvertedFile | None = converted

    @property
    def released(self) -> bool:
        return self._converted is None

    def get(self) -> ConvertedFile | None:
        return self._converted

    def release(self) -> None:
        self._converted = None


@dataclass
class ConversionJob:
    id: str
    filename: str
    data: bytes = field(repr=False)
    input_format: str
    output_format: str
    status: str = JobStatus.IDLE
    error: str | None = None
    result: ResultHandle | None = None

    @property
    def output_filename(self) -> str:
        return formats.output_filename(self.filename, self.output_format)


class UploadQueue:
    def __init__(
        self,
        converter: Converter,
        *,
        max_file_size: int = DEFAULT_MAX_UPLOAD_BYTES,
        on_result: Callable[[ConversionJob], None] | None = None,
        on_status: Callable[[ConversionJob, str], None] | None = None,
    ) -> None:
        self._converter = converter
        self._max_file_size = max_file_size
        self._on_result = on_result
        self._on_status = on_status
        self._jobs: dict[str, ConversionJob] = {}
        # _lock guards the queue itself; _worker keeps conversions one at a time
        self._lock = threading.RLock()
        self._worker = threading.Lock()

    @property
    def busy(self) -> bool:
        """True while a start_all run is converting jobs."""
        return self._worker.locked()

    @property
    def jobs(self) -> list[ConversionJob]:
        with self._lock:
            return list(self._jobs.values())

    def get(self, job_id: str) -> ConversionJob | None:
        with self._lock:
            return self._jobs.get(job_id)

    def counts(self) -> dict[str, int]:
        with self._lock:
            statuses = [j.status for j in self._jobs.values()]
        return {
            "pending": statuses.count(JobStatus.IDLE),
            "success": statuses.count(JobStatus.SUCCESS),
            "error": statuses.count(JobStatus.ERROR),
        }

    def add_file(self, filename: str, data: bytes, output_format: str) -> ConversionJob:
        """Validate a file and append it to the queue as an idle job."""
        if len(data) > self._max_file_size:
            raise FileTooLargeError(self._max_file_size)
        input_format = formats.detect_format(filename)
        if not formats.is_supported(output_format):
            raise UnsupportedFormatError(formats.supported_keys())
        if input_format == output_format:
            raise IdenticalFormatError(input_format)

        job = ConversionJob(
            id=uuid.uuid4().hex[:9],
            filename=filename,
            data=data,
            input_format=input_format,
            output_format=output_format,
        )
        with self._lock:
            self._jobs[job.id] = job
        return job

    def start_all(self) -> list[ConversionJob]:
        """Convert every idle job in queue order, strictly one after another."""
        with self._worker:
            with self._lock:
                pending = [j for j in self._jobs.values() if j.status == JobStatus.IDLE]
            for job in pending:
                self._convert(job)
            return pending

    def remove_job(self, job_id: str) -> bool:
        with self._lock:
            job = self._jobs.pop(job_id, None)
        if job is None:
            return False
        if job.result is not None:
            job.result.release()
        return True

    def clear_all(self) -> None:
        with self._lock:
            jobs = list(self._jobs.values())
            self._jobs.clear()
        for job in jobs:
            if job.result is not None:
                job.result.release()

    def download_job(self, job_id: str) -> ConvertedFile | None:
        """Return the fetched result of a job under its derived output filename."""
        with self._lock:
            job = self._jobs.get(job_id)
            converted = job.result.get() if job is not None and job.result is not None else None
        if converted is None:
            return None
        return ConvertedFile(
            content=converted.content,
            filename=job.output_filename,  # type: ignore[union-attr]
            content_type=converted.content_type,
        )

    def _set_status(self, job: ConversionJob, status: str) -> bool:
        with self._lock:
            if job.id not in self._jobs:
                return False
            job.status = status
        self._notify(job, status)
        return True

    def _notify(self, job: ConversionJob, status: str) -> None:
        if self._on_status is not None:
            self._on_status(job, status)

    def _convert(self, job: ConversionJob) -> None:
        if not self._set_status(job, JobStatus.UPLOADING):
            return
        if not self._set_status(job, JobStatus.CONVERTING):
            return
        try:
            converted = self._converter.convert(job.filename, job.data, job.output_format)
        except Exception as e:
            logger.warning("Conversion of %s failed: %s", job.filename, e)
            with self._lock:
                job.status = JobStatus.ERROR
                job.error = str(e) or "Conversion failed"
            self._notify(job, JobStatus.ERROR)
            return

        handle = ResultHandle(converted)
        with self._lock:
            if job.id not in self._jobs:
                # Removed while in flight
                handle.release()
                return
            job.status = JobStatus.SUCCESS
            job.error = None
            job.result = handle
        self._notify(job, JobStatus.SUCCESS)
        if self._on_result is not None:
            self._on_result(job)
