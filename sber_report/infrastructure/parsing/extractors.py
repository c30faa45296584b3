"""Table extractors turning located regions into typed statement rows."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Sequence

from sber_report.config import SETTINGS
from sber_report.domain.errors import DecodeError, InvalidDate, MetaNotFound, MissingColumn
from sber_report.domain.models import (
    AccountKind,
    AssetValuationRow,
    CashFlowKind,
    CashFlowRow,
    IisContributionRow,
    PortfolioPosition,
    ReportMeta,
    RowFailure,
    TableKind,
)
from sber_report.infrastructure.parsing.decoder import CellDecoder
from sber_report.infrastructure.parsing.locator import MetaRegion, TableRegion
from sber_report.infrastructure.parsing.utils import capitalize_words, match_label

_DATE = r"\d{1,4}[./-]\d{1,2}[./-]\d{2,4}"
_PERIOD = re.compile(rf"(?:\bс|\bfrom)\s+({_DATE})\s+(?:по|to|-|\u2014)\s+({_DATE})", re.IGNORECASE)
_GENERATED = re.compile(
    rf"(?:дата создания|дата формирования|generated(?:\s+on|\s+at)?)\s*:?\s*({_DATE}(?:\s+\d{{1,2}}:\d{{2}}(?::\d{{2}})?)?)",
    re.IGNORECASE,
)
_INVESTOR_LABEL = re.compile(r"^.*?(?:инвестор|investor)\s*:?\s*", re.IGNORECASE)
_ACCOUNT_ID = re.compile(r"(?:договор|contract|account)\D*?([A-Za-z0-9]*\d[A-Za-z0-9]*)", re.IGNORECASE)
_CONTRACT_DATE = re.compile(rf"(?:\bот|\bdated)\s+({_DATE})", re.IGNORECASE)

IIS_MARKERS = ("индивидуального инвестиционного счета", "индивидуального инвестиционного счёта", "ИИС", "IIS")

CURRENCY_HINTS = (
    ("RUB", ("руб", "rub", "₽")),
    ("USD", ("долл", "usd")),
    ("EUR", ("евро", "eur")),
)

CASH_FLOW_KINDS: tuple[tuple[CashFlowKind, tuple[str, ...]], ...] = (
    (CashFlowKind.OPENING_BALANCE, ("входящий остаток", "opening balance")),
    (CashFlowKind.CLOSING_BALANCE, ("исходящий остаток", "closing balance")),
    (CashFlowKind.TRADES_NET, ("сальдо расчетов по сделкам", "сальдо расчётов по сделкам", "trades net")),
    (CashFlowKind.CORPORATE_ACTIONS, ("корпоративные действия", "дивиденд", "купон", "dividend", "coupon")),
    (CashFlowKind.BROKER_FEE, ("комиссия брокера", "broker fee")),
    (CashFlowKind.EXCHANGE_FEE, ("комиссия биржи", "комиссия торговой системы", "exchange fee")),
    (CashFlowKind.TAX, ("ндфл", "налог", "tax")),
    (CashFlowKind.DEPOSIT, ("зачисление", "пополнение", "ввод", "deposit")),
    (CashFlowKind.WITHDRAWAL, ("списание", "вывод", "withdrawal")),
)

MARKET_PREFIXES = ("площадка", "trading venue")
UNLIMITED_MARKERS = ("ограничений нет", "без ограничений", "unlimited")


def extract_meta(region: MetaRegion, decoder: CellDecoder) -> ReportMeta:
    period = _PERIOD.search(region.period_line)
    if period is None:
        raise MetaNotFound(f"No statement period in {region.period_line!r}")
    generated = _GENERATED.search(region.period_line)
    contract_date = _CONTRACT_DATE.search(region.account_line)
    try:
        period_start = decoder.decode_date(period.group(1))
        period_end = decoder.decode_date(period.group(2))
        generated_at = decoder.decode_timestamp(generated.group(1)) if generated else None
        contract_on = decoder.decode_date(contract_date.group(1)) if contract_date else None
    except InvalidDate as exc:
        raise MetaNotFound(f"Statement header has an unreadable date: {exc}") from exc

    investor_name = capitalize_words(_INVESTOR_LABEL.sub("", region.investor_line, count=1))
    if not investor_name:
        raise MetaNotFound(f"No investor name in {region.investor_line!r}")
    account = _ACCOUNT_ID.search(region.account_line)
    if account is None:
        raise MetaNotFound(f"No account identifier in {region.account_line!r}")

    markers = " ".join((region.investor_line, region.account_line))
    account_kind = AccountKind.IIS if match_label([markers], IIS_MARKERS) is not None else AccountKind.BROKER
    return ReportMeta(
        account_id=account.group(1),
        account_kind=account_kind,
        period_start=period_start,
        period_end=period_end,
        generated_at=generated_at,
        investor_name=investor_name,
        contract_date=contract_on,
    )


def classify_cash_flow(description: str) -> CashFlowKind:
    for kind, keywords in CASH_FLOW_KINDS:
        if match_label([description], keywords) is not None:
            return kind
    return CashFlowKind.OTHER


def currency_hint(region: TableRegion, default: str | None = None) -> str:
    texts = [region.caption or "", *region.labels]
    for currency, markers in CURRENCY_HINTS:
        if any(match_label(texts, (marker,)) is not None for marker in markers):
            return currency
    return default or SETTINGS.default_currency


@dataclass(frozen=True)
class Column:
    field: str
    synonyms: tuple[str, ...]
    required: bool = True


@dataclass(frozen=True)
class ExtractionContext:
    """Statement-level facts a table relies on but does not print itself."""

    period_start: date
    period_end: date
    currency: str


@dataclass(frozen=True)
class Extraction:
    rows: tuple[Any, ...]
    failures: tuple[RowFailure, ...]


class TableExtractor:
    """Base extractor: resolves the column map then classifies and decodes rows."""

    kind: TableKind
    columns: tuple[Column, ...] = ()

    def __init__(self, footer_keywords: Sequence[str] | None = None) -> None:
        self._footer_keywords = tuple(k.casefold() for k in (footer_keywords or SETTINGS.footer_keywords))

    def resolve_columns(self, labels: Sequence[str]) -> dict[str, int]:
        positions: dict[str, int] = {}
        for column in self.columns:
            index = match_label(labels, column.synonyms, exclude=positions.values())
            if index is None:
                if column.required:
                    raise MissingColumn(column.synonyms[0])
                continue
            positions[column.field] = index
        return positions

    def is_footer(self, cells: Sequence[str]) -> bool:
        first = next((cell for cell in cells if cell), "")
        return first.casefold().startswith(self._footer_keywords)

    def extract(self, region: TableRegion, decoder: CellDecoder, context: ExtractionContext) -> Extraction:
        try:
            positions = self.resolve_columns(region.labels)
        except MissingColumn as exc:
            return Extraction(rows=(), failures=(RowFailure(index=None, error=exc),))

        state: dict[str, Any] = {}
        rows: list[Any] = []
        failures: list[RowFailure] = []
        for index, series in region.frame.iterrows():
            cells = [decoder.decode_text(value) for value in series.tolist()]
            if not any(cells) or self.is_footer(cells):
                continue
            if self.read_section(cells, state):
                continue
            fields = {name: cells[pos] for name, pos in positions.items()}
            try:
                row = self.decode_row(fields, decoder, context, state)
            except DecodeError as exc:
                failures.append(RowFailure(index=int(index), error=exc))
                continue
            if row is not None:
                rows.append(row)
        return Extraction(rows=tuple(rows), failures=tuple(failures))

    def read_section(self, cells: Sequence[str], state: dict[str, Any]) -> bool:
        return False

    def decode_row(
        self,
        fields: dict[str, str],
        decoder: CellDecoder,
        context: ExtractionContext,
        state: dict[str, Any],
    ) -> Any:
        raise NotImplementedError


class AssetValuationExtractor(TableExtractor):
    kind = TableKind.ASSET_VALUATION
    columns = (
        Column("category", ("Торговая площадка", "Площадка", "Trading venue")),
        Column("amount", ("на конец периода Всего", "End of period Total")),
        Column("start_amount", ("на начало периода Всего", "Start of period Total"), required=False),
        Column("securities", ("на конец периода Оценка портфеля ЦБ", "End of period Securities"), required=False),
        Column("cash", ("на конец периода Денежные средства", "End of period Cash"), required=False),
        Column("change", ("Изменение", "Change"), required=False),
    )

    def decode_row(self, fields, decoder, context, state):
        category = fields["category"]
        if not category:
            raise DecodeError(category, "Asset valuation row without a trading venue")
        amount = decoder.decode_amount(fields["amount"])

        def optional(name: str):
            return decoder.decode_amount(fields.get(name, "")).value

        return AssetValuationRow(
            category=category,
            amount=amount.value,
            currency=amount.currency or context.currency,
            start_amount=optional("start_amount"),
            securities=optional("securities"),
            cash=optional("cash"),
            change=optional("change"),
        )


class CashFlowExtractor(TableExtractor):
    kind = TableKind.CASH_FLOW
    columns = (
        Column("description", ("Описание", "Описание операции", "Description")),
        Column("amount", ("Сумма", "Amount")),
        Column("currency", ("Валюта", "Currency"), required=False),
        Column("date", ("Дата", "Дата операции", "Date"), required=False),
    )

    def decode_row(self, fields, decoder, context, state):
        description = fields["description"]
        if not description:
            raise DecodeError(description, "Cash flow row without a description")
        kind = classify_cash_flow(description)
        amount = decoder.decode_amount(fields["amount"])
        if fields.get("date"):
            when = decoder.decode_date(fields["date"])
        elif kind is CashFlowKind.OPENING_BALANCE:
            when = context.period_start
        else:
            when = context.period_end
        return CashFlowRow(
            date=when,
            description=description,
            kind=kind,
            amount=amount.value,
            currency=decoder.decode_currency(fields.get("currency")) or amount.currency or context.currency,
        )


class PortfolioExtractor(TableExtractor):
    kind = TableKind.PORTFOLIO
    columns = (
        Column("name", ("Наименование", "Name")),
        Column("isin", ("ISIN",)),
        Column("currency", ("Валюта цены", "Валюта", "Currency"), required=False),
        Column("quantity_start", ("Начало периода Количество", "Start of period Quantity"), required=False),
        Column("value_start", ("Начало периода Рыночная стоимость", "Start of period Market value"), required=False),
        Column("quantity", ("Конец периода Количество", "End of period Quantity")),
        Column("price", ("Конец периода Рыночная цена", "End of period Market price"), required=False),
        Column("value", ("Конец периода Рыночная стоимость", "End of period Market value")),
        Column("nominal_start", ("Начало периода Номинал", "Start of period Nominal"), required=False),
        Column("nominal_end", ("Конец периода Номинал", "End of period Nominal"), required=False),
        Column("accrued_interest_start", ("Начало периода НКД", "Start of period Accrued interest"), required=False),
        Column("accrued_interest_end", ("Конец периода НКД", "End of period Accrued interest"), required=False),
        Column("quantity_delta", ("Изменение за период Количество", "Change Quantity"), required=False),
        Column("value_delta", ("Изменение за период Рыночная стоимость", "Change Market value"), required=False),
        Column("planned_in_quantity", ("Плановые зачисления", "Planned incoming"), required=False),
        Column("planned_out_quantity", ("Плановые списания", "Planned outgoing"), required=False),
        Column("planned_end_quantity", ("Плановый исходящий остаток", "Planned closing"), required=False),
    )

    # Optional numeric columns; None when the export omits them.
    optional_amounts = (
        "quantity_start",
        "value_start",
        "nominal_start",
        "nominal_end",
        "accrued_interest_start",
        "accrued_interest_end",
        "quantity_delta",
        "value_delta",
        "planned_in_quantity",
        "planned_out_quantity",
        "planned_end_quantity",
    )

    def read_section(self, cells, state):
        first = cells[0]
        if not first.casefold().startswith(MARKET_PREFIXES):
            return False
        state["market"] = first.split(":", 1)[-1].strip() if ":" in first else first
        return True

    def decode_row(self, fields, decoder, context, state):
        isin = decoder.decode_identifier(fields["isin"])
        value = decoder.decode_amount(fields["value"])
        optional = {name: decoder.decode_amount(fields.get(name, "")).value for name in self.optional_amounts}
        return PortfolioPosition(
            isin=isin,
            name=fields["name"],
            quantity=decoder.decode_amount(fields["quantity"]).value,
            value=value.value,
            currency=decoder.decode_currency(fields.get("currency")) or value.currency or context.currency,
            price=decoder.decode_amount(fields.get("price", "")).value,
            market=state.get("market"),
            **optional,
        )


class IisContributionsExtractor(TableExtractor):
    kind = TableKind.IIS_CONTRIBUTIONS
    columns = (
        Column("year", ("Год", "Year")),
        Column("date", ("Дата операции", "Дата", "Date")),
        Column("amount", ("Сумма", "Amount")),
        Column("remaining_limit", ("Остаток лимита", "Remaining limit"), required=False),
        Column("limit", ("Лимит", "Limit"), required=False),
        Column("reason", ("Основание операции", "Основание", "Reason"), required=False),
    )

    @staticmethod
    def _limit(text: str, decoder: CellDecoder):
        if match_label([text], UNLIMITED_MARKERS) is not None:
            return None
        return decoder.decode_amount(text).value

    def decode_row(self, fields, decoder, context, state):
        if fields["year"]:
            year = re.match(r"\d{4}", fields["year"])
            if year is None:
                raise DecodeError(fields["year"], f"Invalid year {fields['year']!r}")
            state["year"] = int(year.group(0))
        if fields.get("limit"):
            state["limit"] = self._limit(fields["limit"], decoder)
        if not fields["date"]:
            # Year heading rows carry only the year and its limit.
            return None
        amount = decoder.decode_amount(fields["amount"])
        remaining = fields.get("remaining_limit", "")
        return IisContributionRow(
            date=decoder.decode_date(fields["date"]),
            amount=amount.value,
            currency=amount.currency or context.currency,
            year=state.get("year"),
            limit=state.get("limit"),
            reason=fields.get("reason", ""),
            remaining_limit=self._limit(remaining, decoder) if remaining else None,
        )


EXTRACTORS: dict[TableKind, type[TableExtractor]] = {
    TableKind.ASSET_VALUATION: AssetValuationExtractor,
    TableKind.PORTFOLIO: PortfolioExtractor,
    TableKind.CASH_FLOW: CashFlowExtractor,
    TableKind.IIS_CONTRIBUTIONS: IisContributionsExtractor,
}
