"""Sealed, period-ordered collection of reports with merge views."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from sber_report.application.dto import BatchPolicy, ParseOptions
from sber_report.domain.models import Report
from sber_report.domain.repositories import ReportSource
from sber_report.domain.results import MergedCashFlow, MergedPositions
from sber_report.domain.services import ReportAggregator
from sber_report.infrastructure.repositories.directory_repository import DirectoryReportRepository


@dataclass(frozen=True)
class ReportSet:
    """Reports ordered by period start; statements are never deduplicated."""

    reports: tuple[Report, ...] = ()
    failures: tuple[tuple[Path, Exception], ...] = field(default=(), compare=False)

    @classmethod
    def from_reports(cls, reports: Iterable[Report], failures: Iterable[tuple[Path, Exception]] = ()) -> "ReportSet":
        # sorted() is stable: statements sharing a start date keep load order.
        ordered = sorted(reports, key=lambda report: report.meta.period_start)
        return cls(reports=tuple(ordered), failures=tuple(failures))

    @classmethod
    def from_source(cls, source: ReportSource) -> "ReportSet":
        return cls.from_reports(source.list_reports(), source.list_failures())

    @classmethod
    def from_dir(
        cls,
        path: Path | str,
        options: ParseOptions | None = None,
        policy: BatchPolicy = BatchPolicy.FAIL_FAST,
        max_workers: int = 1,
    ) -> "ReportSet":
        return cls.from_source(
            DirectoryReportRepository(path, options=options, policy=policy, max_workers=max_workers)
        )

    def __len__(self) -> int:
        return len(self.reports)

    def __iter__(self) -> Iterator[Report]:
        return iter(self.reports)

    def __getitem__(self, index: int) -> Report:
        return self.reports[index]

    def by_account(self, account_id: str) -> Iterator[Report]:
        return (report for report in self.reports if report.meta.account_id == account_id)

    def merge_cash_flows(self, suppress_boundary_duplicates: bool = False) -> MergedCashFlow:
        return ReportAggregator(suppress_boundary_duplicates).merge_cash_flows(self.reports)

    def merge_positions(self) -> MergedPositions:
        return ReportAggregator().merge_positions(self.reports)
