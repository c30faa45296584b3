"""Repository interfaces anchoring the domain layer."""
from __future__ import annotations

from pathlib import Path
from typing import Protocol, Sequence

from .models import Report


class ReportSource(Protocol):
    """Provides assembled reports together with the sources it had to skip."""

    def list_reports(self) -> Sequence[Report]:
        ...

    def list_failures(self) -> Sequence[tuple[Path, Exception]]:
        ...
