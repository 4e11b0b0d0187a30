from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()

DEFAULT_APP_NAME = "Data Alchemist"
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_ALLOWED_FILE_TYPES = [".csv", ".xlsx"]
DEFAULT_MAX_VALIDATION_ERRORS = 100


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_int(value: str | None, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _parse_list(value: str | None) -> List[str]:
    if not value:
        return []
    return [item.strip().lower() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    app_name: str = DEFAULT_APP_NAME
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    allowed_file_types: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_FILE_TYPES))
    max_validation_errors: int = DEFAULT_MAX_VALIDATION_ERRORS
    log_level: str = "INFO"
    debug: bool = False

    def is_allowed(self, filename: str) -> bool:
        name = filename.lower()
        return any(name.endswith(ext) for ext in self.allowed_file_types)


def load_settings() -> Settings:
    """Build settings from ALCHEMIST_* environment variables (a .env file is honoured)."""

    debug = _parse_bool(os.getenv("ALCHEMIST_DEBUG"), False)
    return Settings(
        app_name=os.getenv("ALCHEMIST_APP_NAME", DEFAULT_APP_NAME),
        max_file_size=_parse_int(os.getenv("ALCHEMIST_MAX_FILE_SIZE"), DEFAULT_MAX_FILE_SIZE),
        allowed_file_types=_parse_list(os.getenv("ALCHEMIST_ALLOWED_FILE_TYPES"))
        or list(DEFAULT_ALLOWED_FILE_TYPES),
        max_validation_errors=_parse_int(
            os.getenv("ALCHEMIST_MAX_VALIDATION_ERRORS"), DEFAULT_MAX_VALIDATION_ERRORS
        ),
        log_level=os.getenv("ALCHEMIST_LOG_LEVEL", "DEBUG" if debug else "INFO").upper(),
        debug=debug,
    )
