"""Domain services implementing the cross-statement merge rules."""
from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from .errors import CurrencyMismatch
from .models import CashFlowRow, PortfolioPosition, Report
from .results import MergedCashFlow, MergedPosition, MergedPositions


class ReportAggregator:
    """Folds a period-ordered sequence of reports into merged views.

    Nothing is cached: every call recomputes from the reports it is given.
    """

    def __init__(self, suppress_boundary_duplicates: bool = False) -> None:
        self._suppress_boundary_duplicates = suppress_boundary_duplicates

    def merge_cash_flows(self, reports: Sequence[Report]) -> MergedCashFlow:
        merged: list[CashFlowRow] = []
        suppressed = 0
        previous: Report | None = None
        for report in reports:
            if report.cash_flow is not None:
                rows = report.cash_flow.rows
                if self._suppress_boundary_duplicates and previous is not None and previous.cash_flow is not None:
                    rows, dropped = self._drop_boundary_duplicates(previous, report)
                    suppressed += dropped
                merged.extend(rows)
            # Only directly adjoining statements are compared.
            previous = report
        # sorted() is stable, so equal dates keep set order.
        merged.sort(key=lambda row: row.date)
        return MergedCashFlow(rows=tuple(merged), suppressed=suppressed)

    def merge_positions(self, reports: Sequence[Report]) -> MergedPositions:
        grouped: dict[str, list[PortfolioPosition]] = {}
        for report in reports:
            if report.portfolio is None:
                continue
            for position in report.portfolio.rows:
                grouped.setdefault(position.isin, []).append(position)

        merged: dict[str, MergedPosition] = {}
        for isin, positions in grouped.items():
            currencies = {position.currency for position in positions}
            if len(currencies) > 1:
                raise CurrencyMismatch(isin, currencies)
            quantities = [p.quantity for p in positions]
            values = [p.value for p in positions]
            merged[isin] = MergedPosition(
                isin=isin,
                name=positions[0].name,
                currency=positions[0].currency,
                quantity=self._sum_present(quantities),
                value=self._sum_present(values),
                contributions=len(positions),
                incomplete=any(v is None for v in quantities + values),
                quantity_start=self._sum_present([p.quantity_start for p in positions]),
                value_start=self._sum_present([p.value_start for p in positions]),
                quantity_delta=self._sum_present([p.quantity_delta for p in positions]),
                value_delta=self._sum_present([p.value_delta for p in positions]),
            )
        return MergedPositions(merged)

    @staticmethod
    def _sum_present(values: Sequence[Decimal | None]) -> Decimal | None:
        present = [value for value in values if value is not None]
        if not present:
            return None
        return sum(present, Decimal("0"))

    @staticmethod
    def _drop_boundary_duplicates(previous: Report, current: Report) -> tuple[list[CashFlowRow], int]:
        boundary = {previous.meta.period_end, current.meta.period_start}
        seen = {
            _row_key(row)
            for row in previous.cash_flow.rows
            if row.date in boundary
        }
        kept = [row for row in current.cash_flow.rows if row.date not in boundary or _row_key(row) not in seen]
        return kept, len(current.cash_flow.rows) - len(kept)


def _row_key(row: CashFlowRow) -> tuple:
    return (row.date, row.description, row.amount, row.currency)
