import shutil
from decimal import Decimal
from pathlib import Path

import pytest

from sber_report.application.dto import BatchPolicy, ParseOptions
from sber_report.application.report_set import ReportSet
from sber_report.application.use_cases import build_report
from sber_report.config import SETTINGS
from sber_report.domain.errors import BatchError, MetaNotFound
from sber_report.infrastructure.parsing.loader import load
from sber_report.infrastructure.repositories.directory_repository import list_report_files


@pytest.fixture
def statements_dir(tmp_path: Path, january_path: Path, february_path: Path) -> Path:
    # Names sort against period order so the set has to reorder them.
    shutil.copy(february_path, tmp_path / "a_february.html")
    shutil.copy(january_path, tmp_path / "b_january.html")
    (tmp_path / "notes.txt").write_text("not a statement", encoding="utf-8")
    return tmp_path


def test_list_report_files_filters_extensions(statements_dir: Path):
    names = [path.name for path in list_report_files(statements_dir)]

    assert names == ["a_february.html", "b_january.html"]


def test_from_dir_orders_by_period(statements_dir: Path):
    report_set = ReportSet.from_dir(statements_dir)

    assert len(report_set) == 2
    assert [report.source_name for report in report_set] == ["b_january.html", "a_february.html"]
    assert report_set[0].meta.period_end < report_set[1].meta.period_start
    assert report_set.failures == ()


def test_from_dir_in_parallel_matches_sequential(statements_dir: Path):
    sequential = ReportSet.from_dir(statements_dir)
    parallel = ReportSet.from_dir(statements_dir, max_workers=4)

    assert [r.source_name for r in parallel] == [r.source_name for r in sequential]


def test_fixture_directory_merges(fixtures_dir: Path):
    report_set = ReportSet.from_dir(fixtures_dir)

    positions = report_set.merge_positions()
    cash_flow = report_set.merge_cash_flows()

    assert len(report_set) == 3
    assert positions["RU0009029540"].quantity == Decimal("15")
    assert positions["RU0009029540"].contributions == 2
    assert positions["SU26238RMFS4"].quantity == Decimal("100")
    assert len(cash_flow) == 5 + 3 + 4
    assert [row.date for row in cash_flow] == sorted(row.date for row in cash_flow)
    assert [report.meta.account_id for report in report_set.by_account("S000T49")] == ["S000T49"]


def test_fail_fast_names_the_bad_file(statements_dir: Path):
    (statements_dir / "c_broken.html").write_text("<html><body><p>no header</p></body></html>", encoding="utf-8")

    with pytest.raises(BatchError) as excinfo:
        ReportSet.from_dir(statements_dir)

    assert excinfo.value.path.name == "c_broken.html"
    assert isinstance(excinfo.value.__cause__, MetaNotFound)


def test_skip_invalid_records_failures(statements_dir: Path):
    broken = statements_dir / "c_broken.html"
    broken.write_text("<html><body><p>no header</p></body></html>", encoding="utf-8")

    report_set = ReportSet.from_dir(statements_dir, policy=BatchPolicy.SKIP_INVALID)

    assert len(report_set) == 2
    [(path, error)] = report_set.failures
    assert path == broken
    assert isinstance(error, MetaNotFound)


def test_missing_directory(tmp_path: Path):
    with pytest.raises(BatchError):
        ReportSet.from_dir(tmp_path / "missing")


def test_from_reports_keeps_load_order_for_equal_starts(january_path: Path):
    first = build_report(load(january_path, source_name="first"))
    second = build_report(load(january_path, source_name="second"))

    report_set = ReportSet.from_reports([first, second])

    assert [report.source_name for report in report_set] == ["first", "second"]
    assert len(report_set.merge_cash_flows()) == 10


@pytest.mark.skipif(SETTINGS.real_report_dir is None, reason="REAL_REPORT_DIR is not set")
def test_real_statements_load():
    directory = SETTINGS.real_report_dir

    report_set = ReportSet.from_dir(directory, ParseOptions(), policy=BatchPolicy.SKIP_INVALID)

    assert len(report_set) + len(report_set.failures) == len(list_report_files(directory))
    assert report_set.merge_cash_flows() is not None
