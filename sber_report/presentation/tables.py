"""Tabular renderings of reports and merged views."""
from __future__ import annotations

import csv
import io
from typing import Iterable, Sequence

import pandas as pd

from sber_report.domain.models import Report
from sber_report.domain.results import MergedCashFlow, MergedPositions


def _text(value: object) -> str:
    return "" if value is None else str(value)


def report_summary_rows(reports: Iterable[Report]) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for report in reports:
        meta = report.meta
        rows.append(
            {
                "source": _text(report.source_name),
                "account_id": meta.account_id,
                "account_kind": meta.account_kind.value,
                "period_start": meta.period_start.isoformat(),
                "period_end": meta.period_end.isoformat(),
                "investor": meta.investor_name,
                "asset_change": _text(report.asset_valuation.total_change if report.asset_valuation else None),
                "positions": _text(len(report.portfolio.rows) if report.portfolio else None),
                "cash_flow_rows": _text(len(report.cash_flow.rows) if report.cash_flow else None),
                "iis_contributions": _text(
                    len(report.iis_contributions.rows) if report.iis_contributions else None
                ),
                "skipped_rows": str(sum(len(failures) for failures in report.skipped_rows().values())),
            }
        )
    return rows


def cash_flow_to_rows(merged: MergedCashFlow) -> list[dict[str, str]]:
    return [
        {
            "date": row.date.isoformat(),
            "kind": row.kind.value,
            "description": row.description,
            "amount": _text(row.amount),
            "currency": row.currency,
        }
        for row in merged
    ]


def positions_to_rows(merged: MergedPositions) -> list[dict[str, str]]:
    return [
        {
            "isin": position.isin,
            "name": position.name,
            "currency": position.currency,
            "quantity": _text(position.quantity),
            "value": _text(position.value),
            "quantity_start": _text(position.quantity_start),
            "value_start": _text(position.value_start),
            "quantity_delta": _text(position.quantity_delta),
            "value_delta": _text(position.value_delta),
            "statements": str(position.contributions),
            "incomplete": "yes" if position.incomplete else "",
        }
        for position in merged.values()
    ]


def to_frame(rows: Sequence[dict[str, str]]) -> pd.DataFrame:
    return pd.DataFrame(rows)


def render_text(rows: Sequence[dict[str, str]]) -> str:
    if not rows:
        return "(no rows)"
    return to_frame(rows).to_string(index=False)


def render_csv(rows: Sequence[dict[str, str]]) -> str:
    buffer = io.StringIO()
    if rows:
        writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)
    return buffer.getvalue()
