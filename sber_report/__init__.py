"""Parser and aggregator for Sberbank broker HTML statements."""
from sber_report.application.dto import BatchPolicy, ParseOptions
from sber_report.application.report_set import ReportSet
from sber_report.application.use_cases import ReportAssembler, build_report
from sber_report.domain.models import Report, ReportMeta
from sber_report.domain.services import ReportAggregator
from sber_report.infrastructure.parsing.loader import RawReport, load

__all__ = [
    "BatchPolicy",
    "ParseOptions",
    "RawReport",
    "Report",
    "ReportAggregator",
    "ReportAssembler",
    "ReportMeta",
    "ReportSet",
    "build_report",
    "load",
]
