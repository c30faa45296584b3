"""Directory-backed repository loading every statement in a folder."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Sequence

from sber_report.application.dto import BatchPolicy, ParseOptions
from sber_report.application.use_cases import ReportAssembler
from sber_report.config import SETTINGS
from sber_report.domain.errors import BatchError, ReportError
from sber_report.domain.models import Report
from sber_report.domain.repositories import ReportSource
from sber_report.infrastructure.parsing.loader import load

logger = logging.getLogger(__name__)


def list_report_files(directory: Path, extensions: Sequence[str] | None = None) -> list[Path]:
    extensions = tuple(ext.lower() for ext in (extensions or SETTINGS.report_extensions))
    try:
        entries = sorted(directory.iterdir())
    except OSError as exc:
        raise BatchError(directory, f"cannot list directory: {exc}") from exc
    return [path for path in entries if path.is_file() and path.suffix.lower() in extensions]


class DirectoryReportRepository(ReportSource):
    def __init__(
        self,
        directory: Path | str,
        options: ParseOptions | None = None,
        policy: BatchPolicy = BatchPolicy.FAIL_FAST,
        max_workers: int = 1,
    ) -> None:
        self._directory = Path(directory)
        self._assembler = ReportAssembler(options)
        self._policy = BatchPolicy(policy)
        self._max_workers = max(1, max_workers)
        self._reports: list[Report] | None = None
        self._failures: list[tuple[Path, Exception]] = []

    def _parse(self, path: Path) -> Report | ReportError:
        try:
            return self._assembler.assemble(load(path))
        except ReportError as exc:
            return exc

    def _collect(self) -> None:
        paths = list_report_files(self._directory)
        if self._max_workers > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                outcomes = list(pool.map(self._parse, paths))
        else:
            outcomes = [self._parse(path) for path in paths]

        reports: list[Report] = []
        for path, outcome in zip(paths, outcomes):
            if isinstance(outcome, Report):
                reports.append(outcome)
                continue
            if self._policy is BatchPolicy.FAIL_FAST:
                raise BatchError(path, str(outcome)) from outcome
            logger.warning("Skipping %s: %s", path.name, outcome)
            self._failures.append((path, outcome))
        logger.info(
            "Loaded %d statements from %s (%d skipped)",
            len(reports),
            self._directory,
            len(self._failures),
        )
        self._reports = reports

    def list_reports(self) -> Sequence[Report]:
        if self._reports is None:
            self._collect()
        return tuple(self._reports)

    def list_failures(self) -> Sequence[tuple[Path, Exception]]:
        if self._reports is None:
            self._collect()
        return tuple(self._failures)
