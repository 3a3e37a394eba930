import asyncio
import logging
import os
from dataclasses import asdict
from urllib.parse import quote

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from petite_souris import formats
from petite_souris.conversion import ConversionService
from petite_souris.conversion.adapters import CloudConvertClient
from petite_souris.errors import ConversionError, FileTooLargeError, MissingFileError, ValidationError

app = FastAPI(
    title="Petite Souris",
    version=os.getenv("PETITE_SOURIS_VERSION", "0.1.0"),
    description=(
        "Convert between PDF, Word, text and other document formats. "
        "Conversions are delegated to CloudConvert."
    ),
)

logger = logging.getLogger(__name__)

# Global configuration defaults
MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", "10485760"))
CLOUDCONVERT_API_KEY = os.getenv("CLOUDCONVERT_API_KEY", "")
CLOUDCONVERT_SANDBOX = os.getenv("CLOUDCONVERT_SANDBOX", "false").lower() in {"1", "true", "yes", "on"}
JOB_TIMEOUT_SEC = float(os.getenv("JOB_TIMEOUT_SEC", "300"))
POLL_INTERVAL_SEC = float(os.getenv("POLL_INTERVAL_SEC", "2"))
REQUEST_TIMEOUT_SEC = float(os.getenv("REQUEST_TIMEOUT_SEC", "60"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CHUNK = 1024 * 1024

SERVICE: ConversionService | None = None


def _build_service() -> ConversionService:
    remote = CloudConvertClient(
        CLOUDCONVERT_API_KEY,
        sandbox=CLOUDCONVERT_SANDBOX,
        wait_timeout=JOB_TIMEOUT_SEC,
        poll_interval=POLL_INTERVAL_SEC,
        request_timeout=REQUEST_TIMEOUT_SEC,
    )
    return ConversionService(remote, max_upload_bytes=MAX_FILE_SIZE)


def _get_service() -> ConversionService:
    global SERVICE
    if SERVICE is None:
        SERVICE = _build_service()
    return SERVICE


def _content_disposition(filename: str) -> str:
    try:
        filename.encode("latin-1")
    except UnicodeEncodeError:
        return f"attachment; filename*=UTF-8''{quote(filename)}"
    escaped = filename.replace("\\", "\\\\").replace('"', '\\"')
    return f'attachment; filename="{escaped}"'


@app.on_event("startup")
async def _startup() -> None:
    logging.basicConfig(level=LOG_LEVEL)
    if not CLOUDCONVERT_API_KEY:
        logger.warning("CLOUDCONVERT_API_KEY is not set; remote conversions will be rejected")
    _get_service()


@app.exception_handler(ConversionError)
async def _conversion_error(request: Request, exc: ConversionError) -> JSONResponse:
    if isinstance(exc, FileTooLargeError):
        status_code = 413
    elif isinstance(exc, ValidationError):
        status_code = 400
    else:
        status_code = 500
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    # A "file" part that is not an upload counts as no file at all
    problems: list[str] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        if loc[-1:] == ["file"]:
            return JSONResponse(status_code=400, content={"error": str(MissingFileError())})
        problems.append(f"{'.'.join(loc[1:])}: {err.get('msg')}")
    return JSONResponse(status_code=400, content={"error": "; ".join(problems)})


@app.get("/health")
def health() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.get("/formats")
def list_formats() -> list[dict[str, str]]:
    return [asdict(d) for d in formats.SUPPORTED_FORMATS.values()]


@app.post("/convert")
async def convert(
    file: UploadFile | None = File(None),
    output_format: str | None = Form(None, alias="outputFormat"),
) -> Response:
    """Convert an uploaded document and return the converted file.

    Accepts multipart/form-data with a part named "file" and an optional
    "outputFormat". When the output format is missing or unknown, PDFs are
    converted to DOCX and everything else to PDF.
    """
    if file is None:
        raise MissingFileError()

    service = _get_service()

    # Stop reading as soon as the upload crosses the size limit
    chunks: list[bytes] = []
    size_bytes = 0
    while True:
        chunk = await file.read(CHUNK)
        if not chunk:
            break
        size_bytes += len(chunk)
        service.check_size(size_bytes)
        chunks.append(chunk)
    data = b"".join(chunks)

    try:
        converted = await asyncio.to_thread(service.convert, data, file.filename or "", output_format)
    except ValidationError as e:
        logger.info("Rejected %s: %s", file.filename, e)
        raise
    except ConversionError as e:
        logger.error("Conversion of %s failed: %s", file.filename, e)
        raise
    except Exception as e:
        logger.exception("Unexpected failure converting %s", file.filename)
        raise ConversionError(str(e) or "Conversion failed") from e

    return Response(
        content=converted.content,
        media_type=converted.content_type,
        headers={"Content-Disposition": _content_disposition(converted.filename)},
    )


def run() -> None:
    """Run a development ASGI server using uvicorn.

    Exposes the app at host:port (default 0.0.0.0:8080). Set PORT env var to override.
    """
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    # Enable reload in dev unless explicitly disabled
    reload = os.getenv("RELOAD", "true").lower() in {"1", "true", "yes", "on"}

    uvicorn.run("petite_souris.webapi:app", host=host, port=port, reload=reload, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
