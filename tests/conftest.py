"""
Pytest configuration and shared fixtures.
"""

import json

import pytest
import requests
from fastapi.testclient import TestClient

from petite_souris import webapi
from petite_souris.conversion import ConversionService


class StubRemote:
    """In-memory remote converter that records every call."""

    def __init__(self, content: bytes = b"converted-bytes", error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.calls: list[tuple[bytes, str, str]] = []

    def convert(self, data: bytes, input_format: str, output_format: str) -> bytes:
        self.calls.append((data, input_format, output_format))
        if self.error is not None:
            raise self.error
        return self.content


def make_response(
    status_code: int = 200,
    json_body: object | None = None,
    content: bytes = b"",
    reason: str = "OK",
    headers: dict[str, str] | None = None,
) -> requests.Response:
    """Build a real requests.Response without touching the network."""
    resp = requests.Response()
    resp.status_code = status_code
    resp.reason = reason
    resp._content = json.dumps(json_body).encode("utf-8") if json_body is not None else content
    if headers:
        resp.headers.update(headers)
    return resp


@pytest.fixture
def remote():
    return StubRemote()


@pytest.fixture
def service(remote):
    return ConversionService(remote)


@pytest.fixture
def api(monkeypatch, service):
    """TestClient bound to a gateway whose remote side is the stub."""
    monkeypatch.setattr(webapi, "SERVICE", service)
    return TestClient(webapi.app)
