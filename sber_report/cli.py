"""Command-line entrypoint for parsing and merging broker statements."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from sber_report.application.dto import BatchPolicy, ParseOptions
from sber_report.application.report_set import ReportSet
from sber_report.application.use_cases import ReportAssembler
from sber_report.domain.errors import ReportError
from sber_report.infrastructure.parsing.loader import load
from sber_report.presentation.tables import (
    cash_flow_to_rows,
    positions_to_rows,
    render_csv,
    render_text,
    report_summary_rows,
)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Parse Sberbank broker HTML statements and merge them by period")
    parser.add_argument("path", type=Path, help="Statement file or directory of statements")
    parser.add_argument("--positions", action="store_true", help="Print positions merged across statements")
    parser.add_argument("--cash-flow", action="store_true", help="Print the merged cash-flow ledger")
    parser.add_argument("--skip-invalid", action="store_true", help="Skip statements that fail to parse")
    parser.add_argument("--strict-identifiers", action="store_true", help="Verify ISIN check digits")
    parser.add_argument(
        "--suppress-duplicates",
        action="store_true",
        help="Drop identical cash-flow rows repeated on adjoining statement boundaries",
    )
    parser.add_argument("--csv", action="store_true", help="Render tables as CSV")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _load_set(args: argparse.Namespace, options: ParseOptions) -> ReportSet:
    if args.path.is_dir():
        policy = BatchPolicy.SKIP_INVALID if args.skip_invalid else BatchPolicy.FAIL_FAST
        return ReportSet.from_dir(args.path, options=options, policy=policy)
    report = ReportAssembler(options).assemble(load(args.path))
    return ReportSet.from_reports([report])


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    render = render_csv if args.csv else render_text
    options = ParseOptions(strict_identifiers=args.strict_identifiers)

    try:
        report_set = _load_set(args, options)
        print(render(report_summary_rows(report_set)))
        for path, error in report_set.failures:
            print(f"Skipped {path.name}: {error}")
        if args.cash_flow:
            merged = report_set.merge_cash_flows(suppress_boundary_duplicates=args.suppress_duplicates)
            print()
            print(render(cash_flow_to_rows(merged)))
        if args.positions:
            print()
            print(render(positions_to_rows(report_set.merge_positions())))
    except ReportError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
