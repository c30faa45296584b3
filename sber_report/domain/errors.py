"""Typed failures raised while loading, parsing and aggregating statements."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable


class ReportError(Exception):
    """Base class for every failure raised by this package."""


class LoadError(ReportError):
    """The source could not be read or turned into a document tree."""


class SourceUnreadable(LoadError):
    pass


class MalformedMarkup(LoadError):
    pass


class ParseError(ReportError):
    """The document was loaded but a required section could not be built."""


class MetaNotFound(ParseError):
    pass


class EmptyRequiredTable(ParseError):
    def __init__(self, kind: str, failures: Iterable[object] = ()) -> None:
        self.kind = kind
        self.failures = tuple(failures)
        super().__init__(
            f"Table '{getattr(kind, 'value', kind)}' was found but no row could be decoded ({len(self.failures)} rejected)"
        )


class RejectedRows(ParseError):
    def __init__(self, kind: str, failures: Iterable[object]) -> None:
        self.kind = kind
        self.failures = tuple(failures)
        super().__init__(f"Table '{getattr(kind, 'value', kind)}' has {len(self.failures)} undecodable rows")


class DecodeError(ReportError, ValueError):
    """A single cell could not be decoded into a typed value."""

    def __init__(self, text: str, message: str | None = None) -> None:
        self.text = text
        super().__init__(message or f"Cannot decode {text!r}")


class InvalidDate(DecodeError):
    def __init__(self, text: str) -> None:
        super().__init__(text, f"Invalid date {text!r}")


class InvalidAmount(DecodeError):
    def __init__(self, text: str) -> None:
        super().__init__(text, f"Invalid amount {text!r}")


class InvalidIdentifier(DecodeError):
    def __init__(self, text: str, reason: str = "shape mismatch") -> None:
        self.reason = reason
        super().__init__(text, f"Invalid security identifier {text!r}: {reason}")


class MissingColumn(DecodeError):
    def __init__(self, column: str) -> None:
        self.column = column
        super().__init__(column, f"Required column '{column}' not found in table header")


class PositionError(ReportError):
    """Positions from several statements cannot be merged."""


class CurrencyMismatch(PositionError):
    def __init__(self, isin: str, currencies: Iterable[str]) -> None:
        self.isin = isin
        self.currencies = tuple(sorted(set(currencies)))
        super().__init__(f"{isin} is held in different currencies: {', '.join(self.currencies)}")


class BatchError(ReportError):
    def __init__(self, path: Path | str, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"{self.path}: {message}")
