"""Domain-level results of aggregating several statements."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterator

from .models import CashFlowKind, CashFlowRow


@dataclass(frozen=True)
class CashFlowTotal:
    kind: CashFlowKind
    currency: str
    amount: Decimal
    rows: int
    absent: int


@dataclass(frozen=True)
class MergedCashFlow:
    rows: tuple[CashFlowRow, ...] = field(default_factory=tuple)
    suppressed: int = 0

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[CashFlowRow]:
        return iter(self.rows)

    def totals(self) -> tuple[CashFlowTotal, ...]:
        """Net amount per (kind, currency); blank amounts are counted, not summed."""
        buckets: dict[tuple[CashFlowKind, str], list[CashFlowRow]] = {}
        for row in self.rows:
            buckets.setdefault((row.kind, row.currency), []).append(row)
        totals = []
        for (kind, currency), rows in buckets.items():
            present = [row.amount for row in rows if row.amount is not None]
            totals.append(
                CashFlowTotal(
                    kind=kind,
                    currency=currency,
                    amount=sum(present, Decimal("0")),
                    rows=len(rows),
                    absent=len(rows) - len(present),
                )
            )
        return tuple(totals)


@dataclass(frozen=True)
class MergedPosition:
    isin: str
    name: str
    currency: str
    quantity: Decimal | None
    value: Decimal | None
    contributions: int
    incomplete: bool = False
    quantity_start: Decimal | None = None
    value_start: Decimal | None = None
    quantity_delta: Decimal | None = None
    value_delta: Decimal | None = None


class MergedPositions(Mapping):
    """Read-only mapping of ISIN to the position summed over every statement."""

    def __init__(self, positions: dict[str, MergedPosition]) -> None:
        self._positions = dict(sorted(positions.items()))

    def __getitem__(self, isin: str) -> MergedPosition:
        return self._positions[isin]

    def __iter__(self) -> Iterator[str]:
        return iter(self._positions)

    def __len__(self) -> int:
        return len(self._positions)

    def __repr__(self) -> str:
        return f"MergedPositions({list(self._positions)!r})"
