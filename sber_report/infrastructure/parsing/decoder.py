"""Cell decoder turning raw statement text into typed values."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from sber_report.config import SETTINGS
from sber_report.domain.errors import InvalidAmount, InvalidDate, InvalidIdentifier
from sber_report.domain.models import ABSENT, Amount
from sber_report.infrastructure.parsing.utils import normalize_space


@dataclass(frozen=True)
class LocaleFormat:
    decimal_marks: tuple[str, ...]
    group_marks: tuple[str, ...]
    render_decimal: str
    render_group: str


# The brokerage has exported both "1 234,56" and "1 234.56" over the years,
# so the Russian locale accepts either decimal mark and never groups with commas.
LOCALES = {
    "ru": LocaleFormat(
        decimal_marks=(",", "."),
        group_marks=(" ", "\u00a0", "\u202f", "\u2009", "'"),
        render_decimal=",",
        render_group=" ",
    ),
    "en": LocaleFormat(
        decimal_marks=(".",),
        group_marks=(",", " ", "\u00a0", "\u202f", "\u2009", "'"),
        render_decimal=".",
        render_group=",",
    ),
}

PLACEHOLDERS = {"-", "\u2013", "\u2014", "\u2212", "--"}
MINUS_SIGNS = ("-", "\u2212", "\u2013")

CURRENCY_ALIASES = {
    "₽": "RUB",
    "РУБ": "RUB",
    "РУБ.": "RUB",
    "RUR": "RUB",
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "CNY",
}

_CURRENCY_TOKEN = r"(?:[A-Z]{3}|руб\.?|РУБ\.?|[₽$€£¥])"
_LEADING_CURRENCY = re.compile(rf"^(?P<currency>{_CURRENCY_TOKEN})\s*(?P<rest>.*)$", re.IGNORECASE)
_TRAILING_CURRENCY = re.compile(rf"^(?P<rest>.*?)\s*(?P<currency>{_CURRENCY_TOKEN})$", re.IGNORECASE)
_NUMBER = re.compile(r"^\d+(?:\.\d+)?$|^\.\d+$")

_ISIN_SHAPE = re.compile(r"^[A-Z]{2}[A-Z0-9]{9}[0-9]$")


def isin_checksum_valid(isin: str) -> bool:
    """Luhn check over the ISIN with letters expanded to two-digit numbers."""
    digits = "".join(str(int(ch, 36)) for ch in isin[:-1])
    total = 0
    for position, ch in enumerate(reversed(digits)):
        value = int(ch)
        if position % 2 == 0:
            value *= 2
            if value > 9:
                value -= 9
        total += value
    return (10 - total % 10) % 10 == int(isin[-1])


class CellDecoder:
    """Decodes cell text using one locale and identifier policy."""

    def __init__(
        self,
        locale: str | None = None,
        strict_identifiers: bool = False,
        date_formats: tuple[str, ...] | None = None,
        timestamp_formats: tuple[str, ...] | None = None,
    ) -> None:
        locale = locale or SETTINGS.locale
        if locale not in LOCALES:
            raise ValueError(f"Unsupported locale: {locale!r}")
        self.locale = locale
        self.strict_identifiers = strict_identifiers
        self._format = LOCALES[locale]
        self._date_formats = date_formats or SETTINGS.date_formats
        self._timestamp_formats = timestamp_formats or SETTINGS.timestamp_formats

    def decode_text(self, text: object) -> str:
        return normalize_space("" if text is None else str(text))

    def decode_date(self, text: object) -> date:
        value = self.decode_text(text)
        for fmt in self._date_formats:
            try:
                return datetime.strptime(value, fmt).date()
            except ValueError:
                continue
        raise InvalidDate(value)

    def decode_timestamp(self, text: object) -> datetime:
        value = self.decode_text(text)
        for fmt in self._timestamp_formats:
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue
        try:
            parsed = self.decode_date(value)
        except InvalidDate:
            raise InvalidDate(value) from None
        return datetime(parsed.year, parsed.month, parsed.day)

    def decode_currency(self, text: object) -> str | None:
        value = self.decode_text(text).upper()
        if not value:
            return None
        if value in CURRENCY_ALIASES:
            return CURRENCY_ALIASES[value]
        if value.startswith("РУБ"):
            return "RUB"
        return value

    def decode_amount(self, text: object) -> Amount:
        raw = self.decode_text(text)
        if not raw or raw in PLACEHOLDERS:
            return ABSENT

        value = raw
        negative = False
        if value.startswith("(") and value.endswith(")"):
            negative = True
            value = value[1:-1].strip()

        currency = None
        match = _TRAILING_CURRENCY.match(value)
        if match and match.group("rest"):
            currency = self.decode_currency(match.group("currency"))
            value = match.group("rest")
        else:
            match = _LEADING_CURRENCY.match(value)
            if match and match.group("rest"):
                currency = self.decode_currency(match.group("currency"))
                value = match.group("rest")

        if value.startswith("(") and value.endswith(")") and not negative:
            negative = True
            value = value[1:-1].strip()
        if value.startswith(MINUS_SIGNS):
            negative = not negative
            value = value[1:]
        elif value.startswith("+"):
            value = value[1:]

        for mark in self._format.group_marks:
            value = value.replace(mark, "")
        marks = [ch for ch in value if ch in self._format.decimal_marks]
        if len(marks) > 1:
            raise InvalidAmount(raw)
        if marks:
            value = value.replace(marks[0], ".")
        if not _NUMBER.match(value):
            raise InvalidAmount(raw)
        try:
            number = Decimal(value)
        except InvalidOperation:
            raise InvalidAmount(raw) from None
        return Amount(value=-number if negative else number, currency=currency)

    def render_amount(self, amount: Amount) -> str:
        """Canonical text form that ``decode_amount`` reads back unchanged."""
        if amount.value is None:
            return "-"
        sign = "-" if amount.value < 0 else ""
        digits = format(abs(amount.value), "f")
        whole, _, fraction = digits.partition(".")
        groups = []
        while len(whole) > 3:
            groups.insert(0, whole[-3:])
            whole = whole[:-3]
        groups.insert(0, whole)
        text = sign + self._format.render_group.join(groups)
        if fraction:
            text += self._format.render_decimal + fraction
        if amount.currency:
            text += " " + amount.currency
        return text

    def decode_identifier(self, text: object) -> str:
        value = self.decode_text(text).replace(" ", "").upper()
        if not _ISIN_SHAPE.match(value):
            raise InvalidIdentifier(value)
        if self.strict_identifiers and not isin_checksum_valid(value):
            raise InvalidIdentifier(value, "checksum mismatch")
        return value


DEFAULT_DECODER = CellDecoder()


def decode_date(text: object) -> date:
    return DEFAULT_DECODER.decode_date(text)


def decode_amount(text: object) -> Amount:
    return DEFAULT_DECODER.decode_amount(text)


def decode_identifier(text: object) -> str:
    return DEFAULT_DECODER.decode_identifier(text)
