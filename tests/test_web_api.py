"""HTTP surface tests for the preview server."""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import replace
from pathlib import Path

from fastapi.testclient import TestClient

from resume_preview.documents import DocumentRef
from resume_preview.errors import ExitCode, RenderError
from resume_preview.settings import PreviewSettings
from resume_preview.web.app import create_app
from resume_preview.web.server import ServerController


class FakeRenderer:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = 0

    async def render(self, document: DocumentRef) -> Path:
        self.calls += 1
        await asyncio.sleep(0)
        if self.fail:
            raise RenderError("PDF generation exited with code 1")
        document.pdf_path.write_bytes(b"%PDF-1.7 fake")
        return document.pdf_path


class FakeExtractor:
    async def extract(self, document: DocumentRef) -> str:
        return "[ATS] Analysis:\n  [OK] Skills: Found \"python\"\n  [WARN] Education: No keywords found\n"


def _client(settings: PreviewSettings, renderer=None, controller=None) -> TestClient:
    app = create_app(
        settings,
        renderer=renderer or FakeRenderer(),
        extractor=FakeExtractor(),
        controller=controller,
    )
    return TestClient(app)


def test_health_and_index(settings: PreviewSettings) -> None:
    with _client(settings) as client:
        assert client.get("/healthz").json() == {"status": "ok"}
        index = client.get("/")
        assert index.status_code == 200
        assert "resumeFrame" in index.text


def test_list_documents(settings: PreviewSettings) -> None:
    with _client(settings) as client:
        response = client.get("/api/resumes")

    assert response.status_code == 200
    body = response.json()
    assert body["resumes"] == ["alpha", "beta", "templates/classic"]
    assert body["visible"] == body["resumes"]
    assert body["categorized"]["templates"] == ["templates/classic"]
    assert body["current"] == "alpha"


def test_requested_document_is_opened_first(settings: PreviewSettings) -> None:
    with _client(replace(settings, requested_document="beta")) as client:
        assert client.get("/api/resumes").json()["current"] == "beta"


def test_resume_and_assets_are_served(settings: PreviewSettings) -> None:
    with _client(settings) as client:
        page = client.get("/resume")
        css = client.get("/css/styles.css")
        missing = client.get("/css/missing.css")

    assert page.status_code == 200
    assert "Resume" in page.text
    assert css.status_code == 200
    assert css.headers["content-type"].startswith("text/css")
    assert missing.status_code == 404


def test_traversal_is_forbidden(settings: PreviewSettings) -> None:
    with _client(settings) as client:
        response = client.get("/%2e%2e/beta/resume.html")
    assert response.status_code == 403
    assert response.text == "Forbidden"


def test_switch_document(settings: PreviewSettings) -> None:
    with _client(settings) as client:
        response = client.post("/api/switch/templates/classic")
        current = client.get("/api/resumes").json()["current"]

    assert response.status_code == 200
    assert response.json() == {"success": True, "current": "templates/classic"}
    assert current == "templates/classic"
    saved = json.loads(settings.layout.config_file.read_text(encoding="utf-8"))
    assert saved["lastResume"] == "templates/classic"


def test_switch_unknown_document(settings: PreviewSettings) -> None:
    with _client(settings) as client:
        response = client.get("/api/switch/nope")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "DOCUMENT_NOT_FOUND"
    assert response.json()["error"]["details"] == {"document": "nope"}


def test_config_round_trip(settings: PreviewSettings) -> None:
    with _client(settings) as client:
        update = client.post("/api/config", json={"visibleResumes": ["beta", "ghost"]})
        config = client.get("/api/config").json()
        listing = client.get("/api/resumes").json()

    assert update.status_code == 200
    assert update.json()["visibleResumes"] == ["beta"]
    assert update.json()["current"] == "beta"
    assert config["visibleResumes"] == ["beta"]
    assert config["allResumes"] == ["alpha", "beta", "templates/classic"]
    assert listing["visible"] == ["beta"]
    saved = json.loads(settings.layout.config_file.read_text(encoding="utf-8"))
    assert saved["visibleResumes"] == ["beta"]


def test_config_rejects_empty_payload(settings: PreviewSettings) -> None:
    with _client(settings) as client:
        empty = client.post("/api/config", json={})
        wrong_type = client.post("/api/config", json={"visibleResumes": "alpha"})
        no_valid = client.post("/api/config", json={"visibleResumes": ["ghost"]})

    assert empty.status_code == 400
    assert empty.json()["error"]["message"] == "Invalid data format"
    assert wrong_type.status_code == 400
    assert wrong_type.json()["error"]["code"] == "BAD_REQUEST"
    assert no_valid.status_code == 400
    assert no_valid.json()["error"]["code"] == "NO_VALID_DOCUMENTS"


def test_pdf_is_generated_and_cached(settings: PreviewSettings) -> None:
    renderer = FakeRenderer()
    with _client(settings, renderer=renderer) as client:
        first = client.get("/api/pdf")
        second = client.get("/api/pdf")

    assert first.status_code == 200
    assert first.headers["content-type"] == "application/pdf"
    assert first.headers["content-disposition"] == 'inline; filename="alpha-resume.pdf"'
    assert first.content == b"%PDF-1.7 fake"
    assert second.status_code == 200
    assert renderer.calls == 1


def test_pdf_failure_is_reported(settings: PreviewSettings) -> None:
    with _client(settings, renderer=FakeRenderer(fail=True)) as client:
        response = client.get("/api/pdf")

    assert response.status_code == 500
    assert response.text == "PDF generation failed: PDF generation exited with code 1"


def test_ats_report_page(settings: PreviewSettings) -> None:
    with _client(settings) as client:
        response = client.get("/api/ats-test")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "alpha" in response.text
    assert "Education: No keywords found" in response.text


def test_loading_pages_redirect_to_api(settings: PreviewSettings) -> None:
    with _client(settings) as client:
        pdf = client.get("/pdf")
        ats = client.get("/ats-test")

    assert "/api/pdf" in pdf.text
    assert "/api/ats-test" in ats.text


def test_fast_shutdown_records_exit_code(settings: PreviewSettings) -> None:
    controller = ServerController()
    with _client(settings, controller=controller) as client:
        response = client.post("/api/shutdown-fast")
        later = client.post("/api/shutdown")

    assert response.status_code == 200
    assert response.text == "Server shutting down..."
    assert later.status_code == 200
    assert controller.exit_code == ExitCode.FAST_STOP


def test_server_without_subscribers_stays_up(settings: PreviewSettings) -> None:
    controller = ServerController()
    idle_settings = replace(settings, idle_shutdown=True, idle_grace_seconds=0.2)
    with _client(idle_settings, controller=controller) as client:
        time.sleep(0.6)
        assert not controller.exit_requested
        assert client.get("/healthz").status_code == 200

    assert not controller.exit_requested


def test_update_status_outside_repository(settings: PreviewSettings) -> None:
    with _client(replace(settings, update_available=True)) as client:
        body = client.get("/api/update-status").json()

    assert body["updateAvailable"] is True
    assert body["canSync"] is False


def test_no_documents_blocks_everything_but_shutdown(tmp_path: Path) -> None:
    settings = PreviewSettings(root_dir=tmp_path, idle_shutdown=False)
    controller = ServerController()
    with _client(settings, controller=controller) as client:
        listing = client.get("/api/resumes")
        page = client.get("/")
        shutdown = client.post("/api/shutdown")

    assert listing.status_code == 500
    assert listing.text.startswith("No resumes found.")
    assert page.status_code == 500
    assert shutdown.status_code == 200
    assert controller.exit_code == ExitCode.SUCCESS
