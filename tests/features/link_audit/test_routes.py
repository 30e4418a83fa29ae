"""
End-to-end tests for the upload page, the audit WebSocket and report download.
"""

import csv
import io

import pytest
from fastapi import WebSocketDisconnect

from app.features.link_audit.schemas.link_audit import REPORT_HEADER
from app.platform.websocket_manager import manager


def receive_all(websocket, count):
    return [websocket.receive_text() for _ in range(count)]


class TestUploadPage:
    def test_upload_form(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "Link Audit" in response.text
        assert "/static/js/upload.js" in response.text

    def test_static_script(self, client):
        response = client.get("/static/js/upload.js")

        assert response.status_code == 200
        assert "new WebSocket" in response.text


class TestAuditWebSocket:
    def test_batch_is_audited_and_report_downloadable(self, client):
        with client.websocket_connect("/upload") as websocket:
            websocket.send_bytes(b"\xef\xbb\xbfhttp://example.com\n\nhttp://anchors.test/\n")
            events = receive_all(websocket, 6)

        assert events[:5] == [
            "Processing: http://example.com",
            "Progress: 50%",
            "Processing: http://anchors.test/",
            "Progress: 100%",
            "Processing completed",
        ]
        assert events[5].startswith("Download link: /download/report-")

        response = client.get(events[5][len("Download link: "):])
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")

        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0] == REPORT_HEADER
        assert rows[1][:3] == ["http://example.com", "Example", "200"]
        assert rows[1][4:] == ["false", ""]
        assert rows[2][4:] == ["true", '<a href="#" class="cta" title="No title">']

    def test_text_frames_are_accepted(self, client):
        with client.websocket_connect("/upload") as websocket:
            websocket.send_text("http://nowhere.invalid\n")
            events = receive_all(websocket, 4)

        assert events[:3] == ["Processing: http://nowhere.invalid", "Progress: 100%", "Processing completed"]

    def test_malformed_batch(self, client, reports_dir, transport):
        with client.websocket_connect("/upload") as websocket:
            websocket.send_bytes(b'"http://example.com\n')
            event = websocket.receive_text()
            with pytest.raises(WebSocketDisconnect):
                websocket.receive_text()

        assert event.startswith("Error reading CSV file: ")
        assert transport.requested == []
        assert list(reports_dir.iterdir()) == []

    def test_sessions_get_separate_reports(self, client, reports_dir):
        links = []
        for batch in (b"http://example.com\n", b"http://anchors.test/\n"):
            with client.websocket_connect("/upload") as websocket:
                websocket.send_bytes(batch)
                links.append(receive_all(websocket, 4)[-1])

        assert links[0] != links[1]
        assert len(list(reports_dir.iterdir())) == 2

    def test_session_unregistered_after_completion(self, client):
        with client.websocket_connect("/upload") as websocket:
            websocket.send_bytes(b"http://example.com\n")
            receive_all(websocket, 4)

        assert manager.get_active_session_count() == 0


class TestDownload:
    def test_unknown_report(self, client):
        response = client.get("/download/report-doesnotexist.csv")

        assert response.status_code == 404
        payload = response.json()
        assert payload["status"] == "error"
        assert payload["message"] == "Report not found"
        assert payload["data"] == {"error": "report_not_found"}

    def test_non_report_names_are_refused(self, client, reports_dir):
        (reports_dir / "notes.txt").write_text("secret")

        assert client.get("/download/notes.txt").status_code == 404
