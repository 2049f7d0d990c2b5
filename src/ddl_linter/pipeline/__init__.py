"""Pipeline module."""

from .service import check_text, collect_input_files, load_rules, run_check, run_parse

__all__ = ["check_text", "collect_input_files", "load_rules", "run_check", "run_parse"]
