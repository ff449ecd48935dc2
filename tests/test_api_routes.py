"""Tests for FastAPI routes and upload validation."""

from __future__ import annotations

import io
import zipfile
from datetime import datetime
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from svg_converter.api.routes import janitor_dependency, renderer_dependency, router
from svg_converter.app import create_app
from svg_converter.config import Settings, settings_dependency
from svg_converter.errors import install_error_handlers
from svg_converter.rendering import RasterRenderer, SessionJanitor

from .conftest import png_size

SAMPLE = b'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 400 300"><circle r="5"/></svg>'


class _RecordingJanitor(SessionJanitor):
    def __init__(self, temp_root: Path) -> None:
        super().__init__(temp_root, default_delay=0)
        self.scheduled: list[tuple[str, float | None]] = []

    def schedule_cleanup(self, session, delay=None):
        self.scheduled.append((session.id, delay))
        return super().schedule_cleanup(session, delay)


@pytest.fixture()
def janitor(test_settings: Settings) -> _RecordingJanitor:
    return _RecordingJanitor(Path(test_settings.storage.temp_dir))


@pytest.fixture()
def api_app(test_settings: Settings, fake_engine, janitor) -> FastAPI:
    app = FastAPI()
    install_error_handlers(app)
    app.include_router(router)
    app.dependency_overrides[settings_dependency] = lambda: test_settings
    app.dependency_overrides[renderer_dependency] = lambda: RasterRenderer(fake_engine, test_settings.render)
    app.dependency_overrides[janitor_dependency] = lambda: janitor
    return app


@pytest.fixture()
def api_client(api_app: FastAPI) -> TestClient:
    return TestClient(api_app)


def _svg_file(name: str = "logo.svg", content: bytes = SAMPLE, content_type: str = "image/svg+xml"):
    return (name, content, content_type)


def test_health_returns_status_and_timestamp(api_client):
    response = api_client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00"))


def test_convert_returns_png_with_dimension_headers(api_client):
    response = api_client.post("/api/convert", files={"svg": _svg_file()}, data={"scale": "2"})

    assert response.status_code == 200, response.text
    assert response.headers["content-type"] == "image/png"
    assert response.headers["content-disposition"] == 'attachment; filename="logo.png"'
    assert response.headers["x-image-width"] == "800"
    assert response.headers["x-image-height"] == "600"
    assert png_size(response.content) == (800, 600)


def test_convert_defaults_scale_when_unparsable(api_client):
    response = api_client.post("/api/convert", files={"svg": _svg_file()}, data={"scale": "abc"})

    assert response.status_code == 200
    assert response.headers["x-image-width"] == "800"


def test_convert_accepts_leading_integer_scale(api_client):
    response = api_client.post("/api/convert", files={"svg": _svg_file()}, data={"scale": "3x"})

    assert response.status_code == 200
    assert response.headers["x-image-height"] == "900"


def test_convert_rejects_scale_above_limit(api_client):
    response = api_client.post("/api/convert", files={"svg": _svg_file()}, data={"scale": "9"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_SCALE"


def test_convert_rejects_scale_too_long_to_parse(api_client):
    response = api_client.post("/api/convert", files={"svg": _svg_file()}, data={"scale": "9" * 5000})

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_SCALE"


def test_convert_handles_oversized_width_attribute(api_client):
    markup = '<svg xmlns="http://www.w3.org/2000/svg" width="' + "9" * 5000 + '" height="10"></svg>'
    response = api_client.post(
        "/api/convert",
        files={"svg": ("wide.svg", markup.encode("utf-8"), "image/svg+xml")},
        data={"scale": "1"},
    )

    assert response.status_code == 200
    assert response.headers["x-image-width"] == "900"
    assert response.headers["x-image-height"] == "10"


def test_convert_requires_upload(api_client):
    response = api_client.post("/api/convert", data={"scale": "2"})

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "ERR_FILE_MISSING"
    assert body["error"]


def test_convert_rejects_non_svg(api_client):
    response = api_client.post("/api/convert", files={"svg": ("notes.txt", b"hello", "text/plain")})

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "ERR_FORMAT_UNSUPPORTED"
    assert "Only SVG files are supported" in body["error"]


def test_convert_accepts_svg_extension_with_generic_mime(api_client):
    response = api_client.post(
        "/api/convert", files={"svg": _svg_file(content_type="application/octet-stream")}
    )
    assert response.status_code == 200


def test_convert_rejects_oversized_upload(api_client):
    oversized = SAMPLE + b" " * (1024 * 1024)
    response = api_client.post("/api/convert", files={"svg": _svg_file(content=oversized)})

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_FILE_TOO_LARGE"


def test_convert_render_failure_returns_500(api_client):
    response = api_client.post("/api/convert", files={"svg": _svg_file(content=b"<svg>FAIL_LOAD</svg>")})

    assert response.status_code == 500
    body = response.json()
    assert body["error_code"] == "ERR_RENDER_FAILED"
    assert "page crashed" in body["error"]


def test_batch_returns_archive_without_failed_items(api_client, janitor):
    files = [
        ("svgs", _svg_file("one.svg")),
        ("svgs", _svg_file("two.svg")),
        ("svgs", _svg_file("bad.svg", b"<svg>FAIL_LOAD</svg>")),
        ("svgs", _svg_file("three.svg")),
    ]
    response = api_client.post("/api/convert-batch", files=files, data={"scale": "1"})

    assert response.status_code == 200, response.text
    assert response.headers["content-type"] == "application/zip"
    assert response.headers["content-disposition"].startswith('attachment; filename="svg-to-png-')
    assert response.headers["x-converted-count"] == "3"
    assert response.headers["x-failed-count"] == "1"

    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        assert archive.namelist() == ["one.png", "two.png", "three.png"]
        assert png_size(archive.read("one.png")) == (400, 300)

    assert len(janitor.scheduled) == 1
    assert janitor.scheduled[0][1] == 0


def test_batch_requires_files(api_client):
    response = api_client.post("/api/convert-batch", data={"scale": "2"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_FILE_MISSING"


def test_batch_rejects_too_many_files(api_client):
    files = [("svgs", _svg_file(f"{index}.svg")) for index in range(6)]
    response = api_client.post("/api/convert-batch", files=files)

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_BATCH_LIMIT_EXCEEDED"


def test_batch_rejects_non_svg_member(api_client):
    files = [("svgs", _svg_file("ok.svg")), ("svgs", ("bad.png", b"\x89PNG", "image/png"))]
    response = api_client.post("/api/convert-batch", files=files)

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_FORMAT_UNSUPPORTED"


def test_batch_packaging_failure_returns_500(api_client, monkeypatch, janitor):
    def broken_archive(path, files):
        raise OSError("disk full")

    monkeypatch.setattr("svg_converter.rendering.batch._write_archive", broken_archive)
    response = api_client.post("/api/convert-batch", files=[("svgs", _svg_file())])

    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_PACKAGING_FAILED"
    assert janitor.scheduled == []


def test_create_app_wires_health_and_scratch_area(test_settings, fake_engine):
    app = create_app(test_settings)
    app.dependency_overrides[renderer_dependency] = lambda: RasterRenderer(fake_engine, test_settings.render)

    with TestClient(app) as client:
        assert Path(test_settings.storage.temp_dir).is_dir()
        assert client.get("/health").json()["status"] == "ok"

        response = client.post("/api/convert-batch", files=[("svgs", _svg_file())])
        assert response.status_code == 200

    assert not any(Path(test_settings.storage.temp_dir).iterdir())
