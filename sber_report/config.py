"""Central configuration for the statement parser package."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DATE_FORMATS = (
    "%d.%m.%Y",
    "%d.%m.%y",
    "%Y-%m-%d",
    "%d/%m/%Y",
)

TIMESTAMP_FORMATS = (
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
)

FOOTER_KEYWORDS = ("итого", "всего", "total", "subtotal")

REPORT_EXTENSIONS = (".html", ".htm")


def _env_path(name: str) -> Path | None:
    value = os.environ.get(name, "").strip()
    return Path(value) if value else None


@dataclass(slots=True, frozen=True)
class Settings:
    locale: str
    default_currency: str
    date_formats: tuple[str, ...]
    timestamp_formats: tuple[str, ...]
    footer_keywords: tuple[str, ...]
    report_extensions: tuple[str, ...]
    real_report_dir: Path | None


SETTINGS = Settings(
    locale="ru",
    default_currency="RUB",
    date_formats=DATE_FORMATS,
    timestamp_formats=TIMESTAMP_FORMATS,
    footer_keywords=FOOTER_KEYWORDS,
    report_extensions=REPORT_EXTENSIONS,
    real_report_dir=_env_path("REAL_REPORT_DIR"),
)
