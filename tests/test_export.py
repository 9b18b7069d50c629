import io

import pytest
from openpyxl import load_workbook

from pdf_extractor.services.extraction.errors import ValidationError
from pdf_extractor.services.extraction.export import build_sheets, export_results, sheet_name


def _load(content: bytes):
    return load_workbook(io.BytesIO(content))


def test_one_sheet_per_successful_result():
    results = {
        "exam.pdf": {"Question": ["Q1", "Q2"], "Answer": ["A", "B"]},
        "bad.pdf": "Error: quota exceeded",
        "stored.pdf": '{"Name": ["Kim"]}',
    }
    wb = _load(export_results(results))

    assert wb.sheetnames == ["exam.pdf", "stored.pdf"]
    ws = wb["exam.pdf"]
    assert [c.value for c in ws[1]] == ["Question", "Answer"]
    assert [c.value for c in ws[2]] == ["Q1", "A"]
    assert [c.value for c in ws[3]] == ["Q2", "B"]
    assert wb["stored.pdf"]["A2"].value == "Kim"


def test_column_widths_match_longest_text():
    wb = _load(export_results({"a.pdf": {"Id": ["1", "123456789"], "Description": ["x"]}}))
    ws = wb["a.pdf"]
    assert ws.column_dimensions["A"].width == 9
    assert ws.column_dimensions["B"].width == 11


def test_sheet_name_is_clipped_to_31_chars():
    long_name = "a" * 40 + ".pdf"
    assert sheet_name(long_name) == "a" * 31
    wb = _load(export_results({long_name: {"A": ["1"]}}))
    assert wb.sheetnames == ["a" * 31]


def test_sheet_name_replaces_forbidden_characters():
    assert sheet_name("2024/03 [draft].pdf") == "2024_03 _draft_.pdf"


def test_invalid_stored_json_is_skipped():
    assert build_sheets({"broken.pdf": "{oops"}) == []


def test_nothing_to_export_is_a_validation_error():
    with pytest.raises(ValidationError):
        export_results({"bad.pdf": "Error: failed"})


def test_colliding_clipped_names_stay_within_31_chars():
    base = "quarterly_financial_report_2024"
    wb = _load(export_results({base + "_a.pdf": {"A": ["1"]}, base + "_b.pdf": {"A": ["2"]}}))

    assert wb.sheetnames == [base, base[:29] + "~2"]
    assert all(len(name) <= 31 for name in wb.sheetnames)
    assert wb[base[:29] + "~2"]["A2"].value == "2"


def test_sheet_names_are_unique_ignoring_case():
    sheets = build_sheets({"Report.pdf": {"A": ["1"]}, "report.pdf": {"A": ["2"]}, "x": {"A": ["3"]}})
    assert [s.name for s in sheets] == ["Report.pdf", "report.pdf~2", "x"]
