"""reporter 모듈 테스트."""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path

import pytest

from ddl_linter.common import Finding, ObjectKind, ParseIssue, SchemaObject, Severity, UserInputError
from ddl_linter.reporter import (
    PARSE_RULE_ID,
    build_report,
    render_csv,
    render_html,
    render_json,
    render_report,
    render_text,
    write_report,
)


def _finding(obj: str, severity: Severity, rule_id: str = "r", column: str | None = None) -> Finding:
    return Finding(
        rule_id=rule_id,
        severity=severity,
        object_name=obj,
        message=f"{rule_id} on {obj}",
        column_name=column,
    )


def _objects(*names: str) -> tuple[SchemaObject, ...]:
    return tuple(SchemaObject(name=name, kind=ObjectKind.TABLE) for name in names)


def test_sections_follow_object_order_and_sort_by_severity() -> None:
    findings = [
        _finding("B_X", Severity.INFO, "first"),
        _finding("A_X", Severity.WARNING, "w1"),
        _finding("A_X", Severity.ERROR, "e1"),
        _finding("A_X", Severity.WARNING, "w2"),
    ]

    report = build_report(findings, _objects("B_X", "A_X", "C_X"))

    assert [section.object_name for section in report.sections] == ["B_X", "A_X", "C_X"]
    assert [item.rule_id for item in report.sections[1].findings] == ["e1", "w1", "w2"]
    assert report.sections[2].findings == ()


def test_counts_cover_all_severities_and_pass_flag() -> None:
    report = build_report(
        [_finding("A_X", Severity.WARNING), _finding("A_X", Severity.INFO)], _objects("A_X")
    )

    assert report.counts == {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 1}
    assert report.passed is True
    assert report.failed(Severity.WARNING) is True
    assert report.failed(Severity.ERROR) is False


def test_parse_issues_become_warning_findings() -> None:
    issues = [
        ParseIssue(statement_index=3, offset=42, message="unsupported constraint CHECK", object_name="D_X"),
        ParseIssue(statement_index=4, offset=99, message="expected identifier", source="a.sql"),
    ]

    report = build_report([], _objects("D_X"), issues)

    assert [section.object_name for section in report.sections] == ["D_X", "<statement 4 in a.sql>"]
    first = report.sections[0].findings[0]
    assert first.rule_id == PARSE_RULE_ID
    assert first.severity is Severity.WARNING
    assert first.message == "statement 3 at offset 42 in <string>: unsupported constraint CHECK"
    assert report.counts[Severity.WARNING] == 2


def test_report_is_deterministic() -> None:
    findings = [_finding("A_X", Severity.ERROR), _finding("A_X", Severity.WARNING, column="C")]

    first = build_report(findings, _objects("A_X"))
    second = build_report(findings, _objects("A_X"))

    assert render_json(first) == render_json(second)
    assert render_text(first) == render_text(second)


def test_render_json_structure() -> None:
    report = build_report([_finding("A_X", Severity.ERROR, column="C")], _objects("A_X"))
    payload = json.loads(render_json(report))

    assert payload["passed"] is False
    assert payload["summary"] == {"objects": 1, "findings": 1, "ERROR": 1, "WARNING": 0, "INFO": 0}
    assert payload["objects"][0]["object"] == "A_X"
    assert payload["findings"][0] == {
        "object": "A_X",
        "column": "C",
        "rule_id": "r",
        "severity": "ERROR",
        "message": "r on A_X",
    }


def test_render_csv_rows() -> None:
    report = build_report(
        [_finding("A_X", Severity.WARNING), _finding("A_X", Severity.ERROR, column="C")],
        _objects("A_X"),
    )
    rows = list(csv.DictReader(io.StringIO(render_csv(report))))

    assert [row["severity"] for row in rows] == ["ERROR", "WARNING"]
    assert rows[0]["column"] == "C"
    assert rows[1]["column"] == ""


def test_render_text_lists_sections_and_summary() -> None:
    report = build_report([_finding("A_X", Severity.ERROR, column="C")], _objects("A_X", "B_X"))
    text = render_text(report)

    assert f"A_X\n  {'ERROR':<7} {'r':<14} C: r on A_X\n" in text
    assert "B_X\n  ok\n" in text
    assert "Summary: objects=2 ERROR=1 WARNING=0 INFO=0" in text
    assert text.endswith("Result: FAILED\n")


def test_render_html_escapes_content() -> None:
    report = build_report([_finding("<A_X>", Severity.INFO)])
    html = render_html(report)

    assert "<title>DDL Linter Report</title>" in html
    assert "&lt;A_X&gt;" in html
    assert "<A_X>" not in html


def test_unknown_format_raises_user_input_error() -> None:
    report = build_report([])

    with pytest.raises(UserInputError):
        render_report(report, "xml")


def test_write_report_creates_parent_directories(tmp_path: Path) -> None:
    report = build_report([_finding("A_X", Severity.WARNING)], _objects("A_X"))
    out_path = write_report(report, "csv", tmp_path / "nested" / "report.csv")

    assert out_path.exists()
    assert out_path.read_text(encoding="utf-8").startswith("object,column,rule_id,severity,message")
