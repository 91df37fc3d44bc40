from __future__ import annotations

import os
from dataclasses import dataclass


def _get_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _get_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _get_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


@dataclass(frozen=True)
class AppConfig:
    max_file_size_mb: int = _get_int_env("PDF_COMPOSE_MAX_FILE_MB", 100)
    max_input_count: int = _get_int_env("PDF_COMPOSE_MAX_INPUTS", 100)
    log_level: str = _get_str_env("PDF_COMPOSE_LOG_LEVEL", "INFO")
    merged_file_name: str = _get_str_env("PDF_COMPOSE_MERGED_NAME", "merged.pdf")
    split_archive_name: str = _get_str_env("PDF_COMPOSE_SPLIT_ARCHIVE_NAME", "split-pages.zip")
    split_page_downloads: bool = _get_bool_env("PDF_COMPOSE_SPLIT_PAGE_DOWNLOADS", False)

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024
