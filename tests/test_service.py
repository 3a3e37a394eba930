"""
Unit tests for ConversionService.
"""

import pytest

from petite_souris.conversion import ConversionService
from petite_souris.errors import (
    ExportError,
    FileTooLargeError,
    IdenticalFormatError,
    UnsupportedFormatError,
)
from tests.conftest import StubRemote


class TestConvert:
    def test_returns_converted_file(self, service, remote):
        result = service.convert(b"%PDF-1.4", "report.pdf", "docx")

        assert result.content == b"converted-bytes"
        assert result.filename == "report.docx"
        assert result.content_type == (
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        )
        assert remote.calls == [(b"%PDF-1.4", "pdf", "docx")]

    def test_default_output_for_pdf(self, service, remote):
        service.convert(b"data", "scan.pdf")
        assert remote.calls[0][2] == "docx"

    def test_default_output_for_non_pdf(self, service, remote):
        result = service.convert(b"hello", "notes.txt")
        assert remote.calls[0][2] == "pdf"
        assert result.filename == "notes.pdf"
        assert result.content_type == "application/pdf"

    def test_unknown_requested_format_is_ignored(self, service, remote):
        service.convert(b"<p>", "page.html", "pptx")
        assert remote.calls[0][1:] == ("html", "pdf")

    def test_identical_formats_make_no_remote_call(self, service, remote):
        with pytest.raises(IdenticalFormatError):
            service.convert(b"data", "letter.odt", "odt")
        assert remote.calls == []

    def test_unsupported_extension_makes_no_remote_call(self, service, remote):
        with pytest.raises(UnsupportedFormatError):
            service.convert(b"data", "sheet.xlsx", "pdf")
        assert remote.calls == []

    def test_oversize_file_rejected_with_limit_in_mb(self, remote):
        service = ConversionService(remote, max_upload_bytes=2 * 1024 * 1024)

        with pytest.raises(FileTooLargeError) as exc_info:
            service.convert(b"x" * (2 * 1024 * 1024 + 1), "big.txt", "pdf")

        assert "Maximum size is 2MB" in str(exc_info.value)
        assert remote.calls == []

    @pytest.mark.parametrize(
        "max_bytes,shown",
        [(10485760, "10MB"), (1500000, "1.430511474609375MB"), (1572864, "1.5MB")],
    )
    def test_limit_in_message_is_not_rounded(self, max_bytes, shown):
        assert str(FileTooLargeError(max_bytes)) == f"File too large. Maximum size is {shown}"

    def test_file_at_limit_accepted(self, remote):
        service = ConversionService(remote, max_upload_bytes=10)
        service.convert(b"x" * 10, "small.txt", "pdf")
        assert len(remote.calls) == 1

    def test_remote_errors_propagate(self):
        service = ConversionService(StubRemote(error=ExportError("Export task failed or file URL not found")))
        with pytest.raises(ExportError):
            service.convert(b"data", "a.doc", "pdf")


class TestResolveFormats:
    def test_resolves_pair(self, service):
        assert service.resolve_formats("Thesis.DOCX", "pdf") == ("docx", "pdf")

    def test_default_limit(self, service):
        assert service.max_upload_bytes == 10485760
