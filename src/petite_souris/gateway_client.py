import logging

import requests

from . import formats
from .conversion.interfaces import ConvertedFile
from .errors import GatewayClientError

logger = logging.getLogger(__name__)


class GatewayClient:
    """HTTP client for the gateway's `POST /convert` endpoint."""

    def __init__(self, api_base: str, *, timeout: float = 600.0, session: requests.Session | None = None) -> None:
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def convert(self, filename: str, data: bytes, output_format: str) -> ConvertedFile:
        input_format = formats.file_extension(filename)
        content_type = (
            formats.content_type_for(input_format) if formats.is_supported(input_format) else "application/octet-stream"
        )
        files = {"file": (filename, data, content_type)}
        try:
            resp = self._session.post(
                f"{self._api_base}/convert",
                files=files,
                data={"outputFormat": output_format},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise GatewayClientError(f"Failed to connect to API: {e}") from e

        if resp.status_code != 200:
            raise GatewayClientError(_error_message(resp), status_code=resp.status_code)

        return ConvertedFile(
            content=resp.content,
            filename=formats.output_filename(filename, output_format),
            content_type=resp.headers.get("Content-Type", formats.content_type_for(output_format)),
        )


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"Conversion failed: {resp.status_code} {resp.text}".strip()
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return "Conversion failed"
