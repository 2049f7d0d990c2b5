"""Reporter service: aggregates findings and renders text/JSON/CSV/HTML outputs."""

from __future__ import annotations

import csv
from html import escape
import io
import json
from pathlib import Path
from typing import Callable, Sequence

from ddl_linter.common import (
    Finding,
    ObjectSection,
    ParseIssue,
    Report,
    SchemaObject,
    Severity,
    UserInputError,
)

PARSE_RULE_ID = "parse"
RECORD_FIELDS = ["object", "column", "rule_id", "severity", "message"]


def build_report(
    findings: Sequence[Finding],
    objects: Sequence[SchemaObject] = (),
    issues: Sequence[ParseIssue] = (),
) -> Report:
    """Groups findings per object and orders each group by severity.

    Sections follow object input order; labels that only appear in findings
    (unnamed statements) follow in first-appearance order. Within a section
    the sort is stable, so rule registration order is kept per severity.
    """

    all_findings = [parse_issue_finding(issue) for issue in issues] + list(findings)

    grouped: dict[str, list[Finding]] = {}
    for obj in objects:
        grouped.setdefault(obj.name, [])
    for item in all_findings:
        grouped.setdefault(item.object_name, []).append(item)

    sections = tuple(
        ObjectSection(
            object_name=name,
            findings=tuple(sorted(items, key=lambda item: item.severity.rank)),
        )
        for name, items in grouped.items()
    )

    counts = {severity: 0 for severity in Severity}
    for item in all_findings:
        counts[item.severity] += 1

    return Report(sections=sections, counts=counts)


def parse_issue_finding(issue: ParseIssue) -> Finding:
    return Finding(
        rule_id=PARSE_RULE_ID,
        severity=Severity.WARNING,
        object_name=issue.label,
        message=(
            f"statement {issue.statement_index} at offset {issue.offset} in {issue.source}: "
            f"{issue.message}"
        ),
    )


def render_json(report: Report) -> str:
    return json.dumps(report.to_dict(), ensure_ascii=False, indent=2) + "\n"


def render_csv(report: Report) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=RECORD_FIELDS, lineterminator="\n")
    writer.writeheader()
    for item in report.findings:
        record = item.to_record()
        record["column"] = record["column"] or ""
        writer.writerow(record)
    return buffer.getvalue()


def render_text(report: Report) -> str:
    lines: list[str] = []
    for section in report.sections:
        lines.append(section.object_name)
        if not section.findings:
            lines.append("  ok")
        for item in section.findings:
            location = f"{item.column_name}: " if item.column_name else ""
            lines.append(
                f"  {item.severity.value:<7} {item.rule_id:<14} {location}{item.message}"
            )
        lines.append("")

    counts = " ".join(f"{severity.value}={report.counts.get(severity, 0)}" for severity in Severity)
    lines.append(f"Summary: objects={len(report.sections)} {counts}")
    lines.append(f"Result: {'PASSED' if report.passed else 'FAILED'}")
    return "\n".join(lines) + "\n"


def render_html(report: Report) -> str:
    sections: list[str] = []

    summary_row = {severity.value: report.counts.get(severity, 0) for severity in Severity}
    summary_row["result"] = "PASSED" if report.passed else "FAILED"
    sections.append("<h2>Summary</h2>")
    sections.append(_render_html_table([summary_row]))

    for section in report.sections:
        sections.append(f"<h2>{escape(section.object_name)}</h2>")
        rows: list[dict[str, object]] = [item.to_record() for item in section.findings]
        sections.append(_render_html_table(rows))

    body = "\n".join(sections)
    return (
        "<!doctype html>\n"
        "<html lang='en'>\n"
        "<head>\n"
        "  <meta charset='utf-8' />\n"
        "  <title>DDL Linter Report</title>\n"
        "  <style>\n"
        "    body { font-family: sans-serif; margin: 24px; }\n"
        "    table { border-collapse: collapse; width: 100%; margin-bottom: 24px; }\n"
        "    th, td { border: 1px solid #ccc; padding: 8px; text-align: left; }\n"
        "    th { background: #f5f5f5; }\n"
        "  </style>\n"
        "</head>\n"
        "<body>\n"
        "  <h1>DDL Linter Report</h1>\n"
        f"  {body}\n"
        "</body>\n"
        "</html>\n"
    )


def _render_html_table(rows: list[dict[str, object]]) -> str:
    if not rows:
        return "<p>No findings.</p>"

    headers = list(rows[0].keys())
    header_html = "".join(f"<th>{escape(header)}</th>" for header in headers)

    row_html_parts: list[str] = []
    for row in rows:
        cells = "".join(
            f"<td>{escape(str(row.get(header) if row.get(header) is not None else ''))}</td>"
            for header in headers
        )
        row_html_parts.append(f"<tr>{cells}</tr>")

    rows_html = "".join(row_html_parts)
    return (
        "<table>"
        f"<thead><tr>{header_html}</tr></thead>"
        f"<tbody>{rows_html}</tbody>"
        "</table>"
    )


RENDERERS: dict[str, Callable[[Report], str]] = {
    "text": render_text,
    "json": render_json,
    "csv": render_csv,
    "html": render_html,
}


def render_report(report: Report, report_format: str) -> str:
    renderer = RENDERERS.get(report_format.lower())
    if renderer is None:
        raise UserInputError(f"Unsupported report format: {report_format}")
    return renderer(report)


def write_report(report: Report, report_format: str, output_path: Path) -> Path:
    """Renders the report and writes it to output_path."""

    content = render_report(report, report_format)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content, encoding="utf-8")
    return output_path
