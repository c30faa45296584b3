"""Shared parsing utilities for HTML ingestion."""
from __future__ import annotations

import hashlib
import re
from io import IOBase
from pathlib import Path
from typing import Iterable, Sequence

from bs4 import Tag

from sber_report.domain.errors import SourceUnreadable

_WHITESPACE = re.compile(r"\s+")


def ensure_bytes(source: bytes | str | Path | IOBase) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, str):
        return source.encode("utf-8")
    if isinstance(source, Path):
        try:
            return source.read_bytes()
        except OSError as exc:
            raise SourceUnreadable(f"Cannot read {source}: {exc}") from exc
    if hasattr(source, "read"):
        data = source.read()
        return data.encode("utf-8") if isinstance(data, str) else bytes(data)
    raise SourceUnreadable(f"Unsupported source type: {type(source)!r}")


def compute_file_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def normalize_space(text: str) -> str:
    return _WHITESPACE.sub(" ", text.replace("\u00ad", "")).strip()


def collect_text(element: Tag) -> str:
    return normalize_space(element.get_text(" "))


def match_label(candidates: Sequence[str], synonyms: Iterable[str], exclude: Iterable[int] = ()) -> int | None:
    """Return the index of the first candidate matching any synonym.

    Strategies are tried in order: exact text, case-insensitive text, then
    case-insensitive substring. Within a strategy synonyms are tried in
    priority order and candidates top to bottom.
    """
    synonyms = list(synonyms)
    skip = set(exclude)
    folded = [normalize_space(c).casefold() for c in candidates]
    strategies = (
        lambda idx, syn: candidates[idx] == syn,
        lambda idx, syn: folded[idx] == syn.casefold(),
        lambda idx, syn: syn.casefold() in folded[idx],
    )
    for matches in strategies:
        for synonym in synonyms:
            for idx in range(len(candidates)):
                if idx not in skip and matches(idx, synonym):
                    return idx
    return None


def own_rows(table: Tag) -> list[Tag]:
    """Rows belonging to ``table`` itself, not to tables nested inside it."""
    return [tr for tr in table.find_all("tr") if tr.find_parent("table") is table]


# The span limits browsers apply.
MAX_COLSPAN = 1000
MAX_ROWSPAN = 65534


def _span(cell: Tag, attr: str, limit: int) -> int:
    try:
        value = int(str(cell.get(attr, "1")).strip() or 1)
    except ValueError:
        return 1
    return min(max(1, value), limit)


def expand_grid(rows: Sequence[Tag], header_rows: int = 0) -> list[list[str]]:
    """Lay table rows out on a rectangular grid.

    Rowspans repeat their text downwards. Colspans repeat their text across
    header rows (so child columns inherit the parent label) and leave the
    extra body cells empty.
    """
    grid: list[list[str]] = []
    carried: dict[int, list] = {}
    for row_index, tr in enumerate(rows):
        fill_colspan = row_index < header_rows
        cells = iter(tr.find_all(["td", "th"], recursive=False))
        line: list[str] = []
        col = 0
        while True:
            if col in carried:
                pending = carried[col]
                line.append(pending[1])
                pending[0] -= 1
                if pending[0] == 0:
                    del carried[col]
                col += 1
                continue
            cell = next(cells, None)
            if cell is None:
                if any(key > col for key in carried):
                    line.append("")
                    col += 1
                    continue
                break
            text = collect_text(cell)
            colspan = _span(cell, "colspan", MAX_COLSPAN)
            rowspan = _span(cell, "rowspan", MAX_ROWSPAN)
            for offset in range(colspan):
                value = text if offset == 0 or fill_colspan else ""
                line.append(value)
                if rowspan > 1:
                    carried[col + offset] = [rowspan - 1, value]
            col += colspan
        grid.append(line)
    width = max((len(line) for line in grid), default=0)
    return [line + [""] * (width - len(line)) for line in grid]


def flatten_header(grid: Sequence[Sequence[str]]) -> list[str]:
    """Join the header cells stacked above each column into one label."""
    if not grid:
        return []
    labels = []
    for col in range(len(grid[0])):
        parts: list[str] = []
        for line in grid:
            text = line[col]
            if text and (not parts or parts[-1] != text):
                parts.append(text)
        labels.append(" ".join(parts))
    return labels


def capitalize_words(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split())
