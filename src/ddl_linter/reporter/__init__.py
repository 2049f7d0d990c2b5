"""Reporter module."""

from .service import (
    PARSE_RULE_ID,
    RENDERERS,
    build_report,
    parse_issue_finding,
    render_csv,
    render_html,
    render_json,
    render_report,
    render_text,
    write_report,
)

__all__ = [
    "PARSE_RULE_ID",
    "RENDERERS",
    "build_report",
    "parse_issue_finding",
    "render_csv",
    "render_html",
    "render_json",
    "render_report",
    "render_text",
    "write_report",
]
