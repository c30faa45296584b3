"""Application services assembling a report from one loaded statement."""
from __future__ import annotations

import logging

from sber_report.application.dto import ParseOptions
from sber_report.domain.errors import EmptyRequiredTable, RejectedRows
from sber_report.domain.models import (
    AssetValuation,
    CashFlowSummary,
    IisContributions,
    Portfolio,
    Report,
    TableKind,
)
from sber_report.infrastructure.parsing.decoder import CellDecoder
from sber_report.infrastructure.parsing.extractors import (
    EXTRACTORS,
    ExtractionContext,
    currency_hint,
    extract_meta,
)
from sber_report.infrastructure.parsing.loader import RawReport
from sber_report.infrastructure.parsing.locator import TableLocator, locate_meta

logger = logging.getLogger(__name__)

TABLE_TYPES = {
    TableKind.ASSET_VALUATION: AssetValuation,
    TableKind.PORTFOLIO: Portfolio,
    TableKind.CASH_FLOW: CashFlowSummary,
    TableKind.IIS_CONTRIBUTIONS: IisContributions,
}


class ReportAssembler:
    def __init__(self, options: ParseOptions | None = None, decoder: CellDecoder | None = None) -> None:
        self._options = options or ParseOptions()
        self._decoder = decoder or CellDecoder(strict_identifiers=self._options.strict_identifiers)

    def assemble(self, raw: RawReport) -> Report:
        name = raw.source_name or "document"
        meta = extract_meta(locate_meta(raw.document), self._decoder)
        logger.debug("%s: account %s, period %s - %s", name, meta.account_id, meta.period_start, meta.period_end)

        locator = TableLocator(raw.document)
        tables: dict[str, object] = {}
        for kind in self._options.enabled_tables():
            region = locator.locate_table(kind)
            if region is None:
                logger.debug("%s: no %s table", name, kind.value)
                continue
            context = ExtractionContext(
                period_start=meta.period_start,
                period_end=meta.period_end,
                currency=currency_hint(region),
            )
            extraction = EXTRACTORS[kind]().extract(region, self._decoder, context)
            if extraction.failures:
                logger.warning("%s: %d rows skipped in %s", name, len(extraction.failures), kind.value)
                if self._options.strict_rows:
                    raise RejectedRows(kind, extraction.failures)
            if not extraction.rows and kind in self._options.required_tables:
                raise EmptyRequiredTable(kind, extraction.failures)
            tables[kind.value] = TABLE_TYPES[kind](rows=extraction.rows, skipped=extraction.failures)

        return Report(meta=meta, source_name=raw.source_name, **tables)


def build_report(raw: RawReport, options: ParseOptions | None = None) -> Report:
    return ReportAssembler(options).assemble(raw)
