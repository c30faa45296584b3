"""Application-level configuration values for parsing and batch loading."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from sber_report.domain.models import TableKind

# The order the brokerage prints its tables in; the locator only scans forward.
TABLE_ORDER = (
    TableKind.ASSET_VALUATION,
    TableKind.PORTFOLIO,
    TableKind.CASH_FLOW,
    TableKind.IIS_CONTRIBUTIONS,
)

DEFAULT_REQUIRED_TABLES = frozenset(
    {TableKind.ASSET_VALUATION, TableKind.PORTFOLIO, TableKind.CASH_FLOW}
)


@dataclass(slots=True, frozen=True)
class ParseOptions:
    """Which sections to extract and how strictly.

    ``meta`` is always parsed: reports are ordered by their period, so it
    cannot be switched off.
    """

    meta: bool = True
    asset_valuation: bool = True
    portfolio: bool = True
    cash_flow: bool = True
    iis_contributions: bool = True
    strict_rows: bool = False
    strict_identifiers: bool = False
    required_tables: frozenset[TableKind] = field(default=DEFAULT_REQUIRED_TABLES)

    def __post_init__(self) -> None:
        if not self.meta:
            raise ValueError("Statement metadata cannot be disabled")

    @classmethod
    def meta_only(cls) -> "ParseOptions":
        return cls(asset_valuation=False, portfolio=False, cash_flow=False, iis_contributions=False)

    def enabled(self, kind: TableKind) -> bool:
        return getattr(self, kind.value)

    def enabled_tables(self) -> tuple[TableKind, ...]:
        return tuple(kind for kind in TABLE_ORDER if self.enabled(kind))


class BatchPolicy(str, Enum):
    FAIL_FAST = "fail_fast"
    SKIP_INVALID = "skip_invalid"
