import logging

from .. import formats
from ..errors import FileTooLargeError
from .interfaces import ConvertedFile, RemoteConverter

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class ConversionService:
    """Core domain service turning one uploaded file into a converted file.

    This service is framework-agnostic and holds no per-request state. All
    validation happens before the remote converter is touched, so a rejected
    request costs nothing on the remote side.
    """

    def __init__(self, remote: RemoteConverter, *, max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES) -> None:
        self._remote = remote
        self._max_upload_bytes = max_upload_bytes

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    def check_size(self, size: int) -> None:
        if size > self._max_upload_bytes:
            raise FileTooLargeError(self._max_upload_bytes)

    def resolve_formats(self, filename: str, requested_output_format: str | None = None) -> tuple[str, str]:
        """Return (input_format, output_format) for an upload or raise a ValidationError."""
        input_format = formats.detect_format(filename)
        output_format = formats.resolve_output_format(input_format, requested_output_format)
        return input_format, output_format

    def convert(
        self,
        file_bytes: bytes,
        filename: str,
        requested_output_format: str | None = None,
    ) -> ConvertedFile:
        self.check_size(len(file_bytes))
        input_format, output_format = self.resolve_formats(filename, requested_output_format)
        logger.info(
            "Converting %s (%d bytes) from %s to %s", filename, len(file_bytes), input_format, output_format
        )

        content = self._remote.convert(file_bytes, input_format, output_format)

        return ConvertedFile(
            content=content,
            filename=formats.output_filename(filename, output_format),
            content_type=formats.content_type_for(output_format),
        )
