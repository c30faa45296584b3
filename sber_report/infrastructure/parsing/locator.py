"""Locates the statement header and the four data tables inside a document."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import pandas as pd
from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from sber_report.domain.errors import MetaNotFound
from sber_report.domain.models import TableKind
from sber_report.infrastructure.parsing.utils import (
    collect_text,
    expand_grid,
    flatten_header,
    match_label,
    normalize_space,
    own_rows,
)

META_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6", "p")

PERIOD_LABELS = ("за период с", "отчет брокера", "отчёт брокера", "period from", "statement period")
INVESTOR_LABELS = ("Инвестор:", "Инвестор", "Investor")
ACCOUNT_LABELS = ("Договор", "Номер договора", "Contract", "Account")


@dataclass(frozen=True)
class TableSpec:
    header_rows: int
    signature: tuple[tuple[str, ...], ...]


TABLE_SPECS: dict[TableKind, TableSpec] = {
    TableKind.ASSET_VALUATION: TableSpec(
        header_rows=2,
        signature=(
            ("Торговая площадка", "Площадка", "Trading venue"),
            ("на конец периода", "End of period"),
        ),
    ),
    TableKind.PORTFOLIO: TableSpec(
        header_rows=2,
        signature=(
            ("ISIN",),
            ("Рыночная стоимость", "Market value"),
            ("Рыночная цена", "Market price"),
        ),
    ),
    TableKind.CASH_FLOW: TableSpec(
        header_rows=1,
        signature=(
            ("Описание", "Description"),
            ("Сумма", "Amount"),
            ("Валюта", "Currency"),
        ),
    ),
    TableKind.IIS_CONTRIBUTIONS: TableSpec(
        header_rows=1,
        signature=(
            ("Год", "Year"),
            ("Дата операции", "Date"),
            ("Основание операции", "Основание", "Reason"),
        ),
    ),
}


@dataclass(frozen=True)
class MetaRegion:
    period_line: str
    investor_line: str
    account_line: str


@dataclass(frozen=True)
class TableRegion:
    """One located table: flattened header labels and the body as a string frame."""

    kind: TableKind
    caption: str | None
    labels: tuple[str, ...]
    frame: pd.DataFrame
    position: int


def _block_lines(element: Tag) -> list[str]:
    lines: list[str] = []
    current: list[str] = []
    for node in element.descendants:
        if isinstance(node, Tag) and node.name == "br":
            lines.append("".join(current))
            current = []
        elif isinstance(node, NavigableString) and not isinstance(node, Comment):
            current.append(str(node))
    lines.append("".join(current))
    return [normalize_space(line) for line in lines if normalize_space(line)]


def _meta_blocks(document: BeautifulSoup) -> list[list[str]]:
    seen: set[str] = set()
    blocks: list[list[str]] = []
    for element in document.find_all(META_TAGS):
        if element.find_parent("table") is not None:
            continue
        lines = []
        for line in _block_lines(element):
            if line not in seen:
                seen.add(line)
                lines.append(line)
        if lines:
            blocks.append(lines)
    return blocks


def text_lines(document: BeautifulSoup) -> list[str]:
    """Heading and paragraph lines outside tables, split at ``<br>``, in document order."""
    return [line for block in _meta_blocks(document) for line in block]


def _is_bare_label(line: str, labels: Sequence[str]) -> bool:
    folded = line.rstrip(":").strip().casefold()
    return any(folded == label.rstrip(":").strip().casefold() for label in labels)


def locate_meta(document: BeautifulSoup) -> MetaRegion:
    blocks = _meta_blocks(document)
    lines = [line for block in blocks for line in block]
    # A label printed alone before a <br> continues on the next line of its block.
    continuation = {line: following for block in blocks for line, following in zip(block, block[1:])}
    found = {}
    for field, labels in (
        ("period_line", PERIOD_LABELS),
        ("investor_line", INVESTOR_LABELS),
        ("account_line", ACCOUNT_LABELS),
    ):
        index = match_label(lines, labels)
        if index is None:
            raise MetaNotFound(f"No {field.replace('_', ' ')} matches {', '.join(labels)}")
        line = lines[index]
        if _is_bare_label(line, labels) and line in continuation:
            line = f"{line} {continuation[line]}"
        found[field] = line
    return MetaRegion(**found)


def matches_signature(labels: Sequence[str], signature: Sequence[Sequence[str]]) -> bool:
    claimed: list[int] = []
    for synonyms in signature:
        index = match_label(labels, synonyms, exclude=claimed)
        if index is None:
            return False
        claimed.append(index)
    return True


def _caption(table: Tag) -> str | None:
    if table.caption is not None:
        text = collect_text(table.caption)
        if text:
            return text
    for sibling in table.find_previous_siblings():
        if not isinstance(sibling, Tag):
            continue
        if sibling.name == "table" or sibling.find("table") is not None:
            return None
        text = collect_text(sibling)
        if text:
            return text
    return None


class TableLocator:
    """Forward-only scanner over the document's data tables.

    Once a table is matched the cursor moves past it, so later lookups never
    see it or anything above it again.
    """

    def __init__(self, document: BeautifulSoup) -> None:
        # Layout tables wrapping other tables are skipped; data tables are leaves.
        self._tables = [table for table in document.find_all("table") if table.find("table") is None]
        self._cursor = 0

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._tables)

    def locate_table(self, kind: TableKind) -> TableRegion | None:
        spec = TABLE_SPECS[kind]
        for index in range(self._cursor, len(self._tables)):
            table = self._tables[index]
            rows = own_rows(table)
            if len(rows) < spec.header_rows:
                continue
            grid = expand_grid(rows, header_rows=spec.header_rows)
            labels = flatten_header(grid[: spec.header_rows])
            if not matches_signature(labels, spec.signature):
                continue
            self._cursor = index + 1
            body = grid[spec.header_rows:]
            return TableRegion(
                kind=kind,
                caption=_caption(table),
                labels=tuple(labels),
                frame=pd.DataFrame(body, columns=range(len(labels)), dtype=str),
                position=index,
            )
        return None
