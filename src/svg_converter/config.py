"""Centralized settings and configuration loading utilities."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_FONT_STACK = (
    '-apple-system, BlinkMacSystemFont, "PingFang SC", "Hiragino Sans GB", '
    '"Microsoft YaHei", "Noto Sans CJK SC", sans-serif'
)


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(3000, ge=1, le=65535)


class RenderSettings(BaseModel):
    default_scale: int = Field(2, ge=1)
    max_scale: int = Field(4, ge=1)
    default_width: int = Field(900, ge=1)
    default_height: int = Field(1200, ge=1)
    load_timeout_sec: float = Field(30, gt=0)
    settle_delay_ms: int = Field(500, ge=300)
    headless: bool = True
    browser_args: List[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
        ]
    )
    font_stack: str = DEFAULT_FONT_STACK


class UploadSettings(BaseModel):
    max_file_size_mb: int = Field(10, ge=1)
    max_batch_files: int = Field(50, ge=1)


class StorageSettings(BaseModel):
    temp_dir: str = "./temp"
    cleanup_delay_sec: float = Field(5, ge=0)
    stale_after_sec: int = Field(3600, ge=0)


class BatchSettings(BaseModel):
    concurrency: int = Field(1, ge=1)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    log_dir: str = "./logs"
    max_log_file_size_mb: int = 100
    backup_count: int = 7


class MonitoringSettings(BaseModel):
    prometheus_port: int = 9091


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SVG_", env_nested_delimiter="__", extra="allow")

    service_name: str = "svg-to-png"
    environment: str = "dev"
    api_version: str = "v1"

    server: ServerSettings = ServerSettings()
    render: RenderSettings = RenderSettings()
    upload: UploadSettings = UploadSettings()
    storage: StorageSettings = StorageSettings()
    batch: BatchSettings = BatchSettings()
    logging: LoggingSettings = LoggingSettings()
    monitoring: MonitoringSettings = MonitoringSettings()

    @staticmethod
    def load_yaml_config_file(file_path: str | Path | None) -> Dict[str, Any]:
        if not file_path:
            return {}
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        import yaml  # lazy import for optional dependency

        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ValueError("Configuration YAML must produce a mapping")
        return data

    @classmethod
    def from_source(cls, *, config_file: str | None = None, **overrides: Any) -> "Settings":
        base_data = cls.load_yaml_config_file(config_file)
        base_data.update(overrides)
        return cls(**base_data)


@lru_cache
def get_settings() -> Settings:
    cfg_file = os.getenv("SVG_CONFIG_FILE")
    if cfg_file:
        return Settings.from_source(config_file=cfg_file)

    default_path = Path.cwd() / "config" / "settings.yaml"
    if default_path.exists():
        return Settings.from_source(config_file=str(default_path))

    return Settings()


def reload_settings() -> None:
    get_settings.cache_clear()


def settings_dependency() -> Settings:
    return get_settings()
