"""Domain models for parsed broker statements.

These dataclasses capture the canonical schema of a single statement. Money
values are ``Decimal``; a value the statement leaves blank is ``None`` and is
never replaced with zero.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterator, Sequence

from sber_report.domain.errors import DecodeError


@dataclass(frozen=True)
class Amount:
    """Decoded money cell: ``value`` is ``None`` for blank or placeholder cells."""

    value: Decimal | None
    currency: str | None = None

    @property
    def is_absent(self) -> bool:
        return self.value is None


ABSENT = Amount(value=None)


class TableKind(str, Enum):
    ASSET_VALUATION = "asset_valuation"
    PORTFOLIO = "portfolio"
    CASH_FLOW = "cash_flow"
    IIS_CONTRIBUTIONS = "iis_contributions"


class AccountKind(str, Enum):
    BROKER = "broker"
    IIS = "iis"


@dataclass(frozen=True)
class ReportMeta:
    """Statement header: whose account, which period, when it was generated."""

    account_id: str
    account_kind: AccountKind
    period_start: date
    period_end: date
    generated_at: datetime | None
    investor_name: str
    contract_date: date | None = None

    @property
    def period(self) -> tuple[date, date]:
        return (self.period_start, self.period_end)


@dataclass(frozen=True)
class RowFailure:
    """A body row the extractor could not decode; ``index`` is ``None`` for table-wide problems."""

    index: int | None
    error: DecodeError


@dataclass(frozen=True)
class AssetValuationRow:
    category: str
    amount: Decimal | None
    currency: str
    start_amount: Decimal | None = None
    securities: Decimal | None = None
    cash: Decimal | None = None
    change: Decimal | None = None


@dataclass(frozen=True)
class AssetValuation:
    rows: tuple[AssetValuationRow, ...]
    skipped: tuple[RowFailure, ...] = ()

    @property
    def total_change(self) -> Decimal | None:
        changes = [row.change for row in self.rows if row.change is not None]
        if not changes:
            return None
        return sum(changes, Decimal("0"))


class CashFlowKind(str, Enum):
    OPENING_BALANCE = "opening_balance"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRADES_NET = "trades_net"
    CORPORATE_ACTIONS = "corporate_actions"
    BROKER_FEE = "broker_fee"
    EXCHANGE_FEE = "exchange_fee"
    TAX = "tax"
    CLOSING_BALANCE = "closing_balance"
    OTHER = "other"


@dataclass(frozen=True)
class CashFlowRow:
    date: date
    description: str
    kind: CashFlowKind
    amount: Decimal | None
    currency: str


@dataclass(frozen=True)
class CashFlowSummary:
    rows: tuple[CashFlowRow, ...]
    skipped: tuple[RowFailure, ...] = ()


@dataclass(frozen=True)
class PortfolioPosition:
    isin: str
    name: str
    quantity: Decimal | None
    value: Decimal | None
    currency: str
    price: Decimal | None
    market: str | None = None
    quantity_start: Decimal | None = None
    value_start: Decimal | None = None
    nominal_start: Decimal | None = None
    nominal_end: Decimal | None = None
    accrued_interest_start: Decimal | None = None
    accrued_interest_end: Decimal | None = None
    quantity_delta: Decimal | None = None
    value_delta: Decimal | None = None
    planned_in_quantity: Decimal | None = None
    planned_out_quantity: Decimal | None = None
    planned_end_quantity: Decimal | None = None


@dataclass(frozen=True)
class Portfolio:
    rows: tuple[PortfolioPosition, ...]
    skipped: tuple[RowFailure, ...] = ()

    def markets(self) -> dict[str | None, tuple[PortfolioPosition, ...]]:
        grouped: dict[str | None, list[PortfolioPosition]] = {}
        for position in self.rows:
            grouped.setdefault(position.market, []).append(position)
        return {market: tuple(positions) for market, positions in grouped.items()}


@dataclass(frozen=True)
class IisContributionRow:
    date: date
    amount: Decimal | None
    currency: str
    year: int | None = None
    limit: Decimal | None = None
    reason: str = ""
    remaining_limit: Decimal | None = None


@dataclass(frozen=True)
class IisContributions:
    rows: tuple[IisContributionRow, ...]
    skipped: tuple[RowFailure, ...] = ()


@dataclass(frozen=True)
class Report:
    """A fully assembled statement; absent tables are ``None``."""

    meta: ReportMeta
    asset_valuation: AssetValuation | None = None
    cash_flow: CashFlowSummary | None = None
    portfolio: Portfolio | None = None
    iis_contributions: IisContributions | None = None
    source_name: str | None = None

    def tables(self) -> Iterator[tuple[TableKind, object]]:
        yield TableKind.ASSET_VALUATION, self.asset_valuation
        yield TableKind.PORTFOLIO, self.portfolio
        yield TableKind.CASH_FLOW, self.cash_flow
        yield TableKind.IIS_CONTRIBUTIONS, self.iis_contributions

    def skipped_rows(self) -> dict[TableKind, Sequence[RowFailure]]:
        return {
            name: table.skipped
            for name, table in self.tables()
            if table is not None and table.skipped
        }

