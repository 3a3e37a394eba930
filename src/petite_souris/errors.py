"""Exceptions shared by the gateway, the remote adapter and the upload queue."""


class ConversionError(Exception):
    """Base class for every failure surfaced by a conversion."""


class ValidationError(ConversionError):
    """Input rejected before any remote call is made."""


class MissingFileError(ValidationError):
    def __init__(self) -> None:
        super().__init__("No file provided")


class UnsupportedFormatError(ValidationError):
    def __init__(self, supported: list[str]) -> None:
        self.supported = supported
        super().__init__(f"Invalid file type. Supported formats: {', '.join(supported)}")


class IdenticalFormatError(ValidationError):
    def __init__(self, fmt: str) -> None:
        self.format = fmt
        super().__init__("Input and output formats cannot be the same")


class FileTooLargeError(ValidationError):
    def __init__(self, max_bytes: int) -> None:
        self.max_bytes = max_bytes
        mb = max_bytes / 1024 / 1024
        limit = f"{mb:.0f}" if mb.is_integer() else repr(mb)
        super().__init__(f"File too large. Maximum size is {limit}MB")


class RemoteServiceError(ConversionError):
    """The remote conversion service failed or returned something unusable."""


class JobCreationError(RemoteServiceError):
    pass


class UploadError(RemoteServiceError):
    pass


class ExportError(RemoteServiceError):
    pass


class DownloadError(RemoteServiceError):
    pass


class RemoteTimeoutError(RemoteServiceError):
    def __init__(self, job_id: str, timeout: float) -> None:
        self.job_id = job_id
        self.timeout = timeout
        super().__init__(f"Conversion job {job_id} did not finish within {timeout:g} seconds")


class GatewayClientError(ConversionError):
    """Raised by the HTTP client when `POST /convert` does not return a file."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
