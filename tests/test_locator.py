from pathlib import Path

import pytest
from bs4 import BeautifulSoup

from sber_report.application.dto import ParseOptions
from sber_report.application.use_cases import build_report
from sber_report.domain.errors import MetaNotFound
from sber_report.domain.models import TableKind
from sber_report.infrastructure.parsing.loader import load
from sber_report.infrastructure.parsing.locator import TableLocator, locate_meta, text_lines
from sber_report.infrastructure.parsing.utils import (
    MAX_COLSPAN,
    expand_grid,
    flatten_header,
    match_label,
    own_rows,
)

NESTED_LAYOUT = """<html><body>
<h3>Отчет брокера за период с 01.01.2023 по 31.01.2023</h3>
<table><tr><td>
<p>Денежные средства</p>
<table>
<tr><td>Описание</td><td>Сумма</td><td>Валюта</td></tr>
<tr><td>Зачисление денежных средств</td><td>1 000,00</td><td>RUB</td></tr>
</table>
</td></tr></table>
</body></html>"""


def make_rows(markup: str):
    soup = BeautifulSoup(f"<table>{markup}</table>", "lxml")
    return own_rows(soup.find("table"))


def test_match_label_prefers_exact_over_substring():
    assert match_label(["Сумма в валюте", "Сумма"], ["Сумма"]) == 1


def test_match_label_falls_back_to_casefold_then_substring():
    assert match_label(["Наименование", "ISIN"], ["isin"]) == 1
    assert match_label(["Наименование", "ISIN ценной бумаги"], ["isin"]) == 1
    assert match_label(["Наименование"], ["ISIN"]) is None


def test_match_label_honours_synonym_priority_and_exclusions():
    assert match_label(["Дата", "Дата операции"], ["Дата операции", "Дата"]) == 1
    assert match_label(["Сумма", "Сумма, руб."], ["Сумма"], exclude=[0]) == 1


def test_expand_grid_spreads_spans():
    rows = make_rows(
        "<tr><th rowspan='2'>A</th><th colspan='2'>B</th></tr>"
        "<tr><th>x</th><th>y</th></tr>"
        "<tr><td colspan='2'>s</td><td>1</td></tr>"
        "<tr><td rowspan='2'>r</td><td>2</td><td>3</td></tr>"
        "<tr><td>4</td><td>5</td></tr>"
    )

    grid = expand_grid(rows, header_rows=2)

    assert grid == [
        ["A", "B", "B"],
        ["A", "x", "y"],
        ["s", "", "1"],
        ["r", "2", "3"],
        ["r", "4", "5"],
    ]
    assert flatten_header(grid[:2]) == ["A", "B x", "B y"]


def test_expand_grid_pads_short_rows():
    rows = make_rows("<tr><td>a</td><td>b</td></tr><tr><td>c</td></tr>")

    assert expand_grid(rows) == [["a", "b"], ["c", ""]]


def test_text_lines_split_at_line_breaks_and_skip_tables(january_path: Path):
    lines = text_lines(load(january_path).document)

    assert lines[1] == "Инвестор: ИВАНОВ ИВАН ИВАНОВИЧ"
    assert lines[2] == "Договор на брокерское обслуживание 100ABC от 01.01.2020"
    assert "Описание" not in lines


def test_locate_meta(january_path: Path):
    region = locate_meta(load(january_path).document)

    assert "01.01.2023" in region.period_line
    assert region.investor_line.startswith("Инвестор")
    assert region.account_line.startswith("Договор")


def test_locate_meta_without_investor():
    raw = load("<h3>Отчет брокера за период с 01.01.2023 по 31.01.2023</h3><p>Договор 1</p>")

    with pytest.raises(MetaNotFound):
        locate_meta(raw.document)


def test_locate_tables_in_document_order(january_path: Path):
    locator = TableLocator(load(january_path).document)

    assets = locator.locate_table(TableKind.ASSET_VALUATION)
    portfolio = locator.locate_table(TableKind.PORTFOLIO)
    cash_flow = locator.locate_table(TableKind.CASH_FLOW)

    assert len(locator) == 3
    assert (assets.position, portfolio.position, cash_flow.position) == (0, 1, 2)
    assert assets.caption == "Оценка активов, руб."
    assert assets.labels[0] == "Торговая площадка"
    assert assets.labels[6] == "Оценка, руб. на конец периода Всего"
    assert assets.frame.shape == (2, 8)
    assert portfolio.labels[6] == "Конец периода Количество, шт"
    assert portfolio.frame.shape == (4, 10)
    assert cash_flow.labels == ("Описание", "Сумма", "Валюта")
    assert locator.cursor == 3


def test_locator_never_moves_backwards(january_path: Path):
    locator = TableLocator(load(january_path).document)

    assert locator.locate_table(TableKind.CASH_FLOW).position == 2
    assert locator.locate_table(TableKind.PORTFOLIO) is None
    assert locator.cursor == 3


def test_missing_table_leaves_cursor(january_path: Path):
    locator = TableLocator(load(january_path).document)

    assert locator.locate_table(TableKind.IIS_CONTRIBUTIONS) is None
    assert locator.cursor == 0


def test_layout_tables_are_skipped():
    locator = TableLocator(load(NESTED_LAYOUT).document)

    region = locator.locate_table(TableKind.CASH_FLOW)

    assert len(locator) == 1
    assert region.caption == "Денежные средства"
    assert region.frame.shape == (1, 3)


def test_expand_grid_caps_corrupt_spans():
    rows = make_rows(
        "<tr><td colspan='10000000'>a</td></tr>"
        "<tr><td rowspan='99999999'>b</td><td>c</td></tr>"
        "<tr><td>d</td></tr>"
    )

    grid = expand_grid(rows)

    assert len(grid[0]) == MAX_COLSPAN
    assert grid[1][:2] == ["b", "c"]
    assert grid[2][:2] == ["b", "d"]


def test_period_label_on_its_own_line():
    raw = load(
        "<h3>Отчет брокера<br>за период с 01.03.2023 по 31.03.2023, дата создания 01.04.2023</h3>"
        "<p>Инвестор: Иванов Иван<br>Договор 100ABC</p>"
    )

    region = locate_meta(raw.document)
    meta = build_report(raw, ParseOptions.meta_only()).meta

    assert region.period_line.startswith("Отчет брокера за период с 01.03.2023")
    assert meta.period_start.isoformat() == "2023-03-01"
    assert meta.period_end.isoformat() == "2023-03-31"


def test_investor_label_on_its_own_line():
    raw = load(
        "<h3>Отчет брокера за период с 01.03.2023 по 31.03.2023</h3>"
        "<p>Инвестор:<br>ИВАНОВ ИВАН<br>Договор 100ABC</p>"
    )

    region = locate_meta(raw.document)
    meta = build_report(raw, ParseOptions.meta_only()).meta

    assert region.investor_line == "Инвестор: ИВАНОВ ИВАН"
    assert region.account_line == "Договор 100ABC"
    assert meta.investor_name == "Иванов Иван"
