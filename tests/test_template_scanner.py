import csv
import json

from conftest import build_form
from referral_pdf.template_scanner import TemplateScanner, field_skeleton, missing_fields, write_field_report


def test_scan_template_lists_fields(tmp_path):
    pdf = build_form(tmp_path / "form.pdf", ("client_Name", "Date"), ("Lives_Alone_Yes",))
    scan = TemplateScanner().scan_template(pdf)

    assert scan["template_file"] == "form.pdf"
    assert scan["has_fields"] is True
    assert scan["field_count"] == 3
    types = {field["name"]: field["type"] for field in scan["fields"]}
    assert types == {"client_Name": "text", "Date": "text", "Lives_Alone_Yes": "checkbox"}


def test_scan_unreadable_file_reports_error(tmp_path):
    bad = tmp_path / "bad.pdf"
    bad.write_bytes(b"nope")
    scan = TemplateScanner().scan_template(bad)
    assert scan["has_fields"] is False
    assert "error" in scan


def test_scan_all_templates(tmp_path):
    build_form(tmp_path / "a.pdf", ("x",))
    build_form(tmp_path / "b.pdf", ("y",))
    results = TemplateScanner(tmp_path).scan_all_templates()
    assert sorted(results) == ["a", "b"]
    assert TemplateScanner(tmp_path / "missing").scan_all_templates() == {}


def test_skeleton_and_missing_fields():
    scan = {"fields": [{"name": "a", "type": "text"}, {"name": "b", "type": "checkbox"}, {"name": "c", "type": "listbox"}]}
    assert field_skeleton(scan) == {"a": "", "b": False, "c": []}
    assert missing_fields(scan, ["a", "z", "y", "z"]) == ["y", "z"]


def test_write_field_report(tmp_path):
    pdf = build_form(tmp_path / "form.pdf", ("client_Name",), ("Cell",))
    paths = write_field_report(TemplateScanner().scan_template(pdf), tmp_path / "out")

    with paths["csv"].open(encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["name", "type"]
    assert sorted(rows[1:]) == [["Cell", "checkbox"], ["client_Name", "text"]]
    assert json.loads(paths["json"].read_text(encoding="utf-8")) == {"client_Name": "", "Cell": False}
