"""
Test configuration and fixtures for the Link Audit service.

Page fetches never touch the network: every test routes httpx through a
MockTransport serving the small site defined in PAGES below.
"""

import asyncio
from typing import Dict, Generator, List

import httpx
import pytest
from dotenv import load_dotenv
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from app.features.link_audit.routes.link_audit import get_http_transport, get_report_exporter
from app.features.link_audit.services.exporter import ReportExporter

load_dotenv()


PAGES: Dict[str, str] = {
    "example.com": "<html><head><title>Example</title></head><body><p>Hello</p></body></html>",
    "anchors.test": (
        "<html><head><title>Anchors</title></head><body>"
        '<a href="#" class="cta">Sign up</a>'
        '<a href="#" class="footer__copy-logo">Logo</a>'
        '<a href="/about" class="cta">About</a>'
        "</body></html>"
    ),
    "untitled.test": "<html><body><a href='#section'>Jump</a></body></html>",
    "missing.test": "<html><head><title>Not Found</title></head></html>",
}

STATUS_CODES: Dict[str, int] = {"missing.test": 404}


def site_handler(request: httpx.Request) -> httpx.Response:
    host = request.url.host
    if host not in PAGES:
        raise httpx.ConnectError(f"Name or service not known: {host}", request=request)
    return httpx.Response(
        STATUS_CODES.get(host, 200),
        headers={"Content-Type": "text/html; charset=utf-8"},
        text=PAGES[host],
    )


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers which URLs were requested."""

    def __init__(self, handler=site_handler):
        self.requested: List[str] = []

        def recording_handler(request: httpx.Request):
            self.requested.append(str(request.url))
            return handler(request)

        super().__init__(recording_handler)


class FakeWebSocket:
    """
    Stand-in for a Starlette WebSocket that stores every sent text frame.

    With `fail_after` set, the send after that many frames raises
    WebSocketDisconnect, like a client that closed its tab.
    """

    def __init__(self, fail_after=None):
        self.sent: List[str] = []
        self.fail_after = fail_after

    async def send_text(self, data: str):
        if self.fail_after is not None and len(self.sent) >= self.fail_after:
            raise WebSocketDisconnect(code=1001)
        await asyncio.sleep(0)
        self.sent.append(data)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def reports_dir(tmp_path):
    path = tmp_path / "reports"
    path.mkdir()
    return path


@pytest.fixture
def exporter(reports_dir) -> ReportExporter:
    return ReportExporter(reports_dir=reports_dir)


@pytest.fixture
def fake_websocket() -> FakeWebSocket:
    return FakeWebSocket()


@pytest.fixture
def disconnecting_websocket():
    """Factory for sockets whose client leaves after `fail_after` frames."""
    return lambda fail_after: FakeWebSocket(fail_after=fail_after)


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from app.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app, exporter, transport) -> Generator[TestClient, None, None]:
    """
    Test client whose audit sessions write to a temporary reports directory
    and fetch pages from the mock site.
    """
    test_app.dependency_overrides[get_report_exporter] = lambda: exporter
    test_app.dependency_overrides[get_http_transport] = lambda: transport
    with TestClient(test_app) as test_client:
        yield test_client
    test_app.dependency_overrides.clear()
