"""Tests for settings loading."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from svg_converter.config import Settings, get_settings, reload_settings


@pytest.fixture(autouse=True)
def _fresh_settings_cache():
    reload_settings()
    yield
    reload_settings()


def test_defaults_match_service_limits():
    settings = Settings()

    assert settings.render.default_scale == 2
    assert (settings.render.default_width, settings.render.default_height) == (900, 1200)
    assert settings.render.load_timeout_sec == 30
    assert settings.render.settle_delay_ms >= 300
    assert "--no-sandbox" in settings.render.browser_args
    assert settings.upload.max_file_size_mb == 10
    assert settings.upload.max_batch_files == 50
    assert settings.storage.cleanup_delay_sec == 5
    assert settings.server.port == 3000


def test_yaml_file_and_overrides(tmp_path):
    config = tmp_path / "settings.yaml"
    config.write_text(
        "render:\n  default_scale: 3\nstorage:\n  temp_dir: /tmp/svg\n",
        encoding="utf-8",
    )

    settings = Settings.from_source(config_file=str(config), service_name="custom")

    assert settings.render.default_scale == 3
    assert settings.storage.temp_dir == "/tmp/svg"
    assert settings.service_name == "custom"


def test_missing_yaml_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        Settings.from_source(config_file=str(tmp_path / "nope.yaml"))


def test_non_mapping_yaml_rejected(tmp_path):
    config = tmp_path / "list.yaml"
    config.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        Settings.load_yaml_config_file(config)


def test_settle_delay_lower_bound():
    with pytest.raises(ValidationError):
        Settings(render={"settle_delay_ms": 100})


def test_environment_overrides(monkeypatch):
    monkeypatch.delenv("SVG_CONFIG_FILE", raising=False)
    monkeypatch.setenv("SVG_UPLOAD__MAX_BATCH_FILES", "7")
    monkeypatch.setenv("SVG_RENDER__DEFAULT_SCALE", "1")

    settings = get_settings()

    assert settings.upload.max_batch_files == 7
    assert settings.render.default_scale == 1


def test_get_settings_reads_config_file_env(monkeypatch, tmp_path):
    config = tmp_path / "svc.yaml"
    config.write_text("server:\n  port: 8088\n", encoding="utf-8")
    monkeypatch.setenv("SVG_CONFIG_FILE", str(config))

    assert get_settings().server.port == 8088
