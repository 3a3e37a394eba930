from dataclasses import dataclass

from .errors import IdenticalFormatError, UnsupportedFormatError


@dataclass(frozen=True)
class FormatDescriptor:
    key: str
    extension: str
    content_type: str
    name: str


SUPPORTED_FORMATS: dict[str, FormatDescriptor] = {
    d.key: d
    for d in (
        FormatDescriptor("pdf", "pdf", "application/pdf", "PDF Document"),
        FormatDescriptor(
            "docx",
            "docx",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "Word Document (DOCX)",
        ),
        FormatDescriptor("doc", "doc", "application/msword", "Word Document (DOC)"),
        FormatDescriptor("txt", "txt", "text/plain", "Plain Text"),
        FormatDescriptor("rtf", "rtf", "application/rtf", "Rich Text Format"),
        FormatDescriptor("odt", "odt", "application/vnd.oasis.opendocument.text", "OpenDocument Text"),
        FormatDescriptor("html", "html", "text/html", "HTML Document"),
    )
}

FALLBACK_BASENAME = "converted-file"


def supported_keys() -> list[str]:
    return list(SUPPORTED_FORMATS)


def is_supported(fmt: str | None) -> bool:
    return bool(fmt) and fmt in SUPPORTED_FORMATS


def file_extension(filename: str) -> str:
    """Return the lower-cased last suffix of `filename`, or "" when it has none."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def detect_format(filename: str) -> str:
    ext = file_extension(filename)
    if not is_supported(ext):
        raise UnsupportedFormatError(supported_keys())
    return ext


def default_output_format(input_format: str) -> str:
    # PDFs go to Word, everything else goes to PDF
    return "docx" if input_format == "pdf" else "pdf"


def resolve_output_format(input_format: str, requested: str | None) -> str:
    """Pick the output format for `input_format`.

    An unknown or empty `requested` value is ignored in favour of the default.
    Raises IdenticalFormatError when the result equals the input format.
    """
    output_format = requested if requested and is_supported(requested) else default_output_format(input_format)
    if output_format == input_format:
        raise IdenticalFormatError(input_format)
    return output_format


def output_filename(filename: str, output_format: str) -> str:
    """Swap the extension of `filename` for the output format's extension."""
    ext = SUPPORTED_FORMATS[output_format].extension
    dot = filename.rfind(".")
    if dot > 0:
        return f"{filename[:dot]}.{ext}"
    return f"{FALLBACK_BASENAME}.{ext}"


def content_type_for(fmt: str) -> str:
    return SUPPORTED_FORMATS[fmt].content_type
