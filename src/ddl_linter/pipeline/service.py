"""Pipeline orchestration service."""

from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import Sequence

from ddl_linter.common import CheckOutcome, ParseResult, UserInputError
from ddl_linter.engine import evaluate
from ddl_linter.observability import get_logger
from ddl_linter.parser import parse_ddl, parse_file
from ddl_linter.reporter import build_report
from ddl_linter.rules import Rule, build_rule_set, load_rule_config

logger = get_logger(__name__)

DDL_SUFFIXES = (".sql", ".ddl")


def load_rules(config_path: Path | None = None) -> tuple[Rule, ...]:
    """Loads configuration and builds the rule set. Raises ConfigurationError."""

    config = load_rule_config(config_path)
    rules = build_rule_set(config)
    logger.info("rule set ready: %s", ", ".join(rule.rule_id for rule in rules))
    return rules


def collect_input_files(input_paths: Sequence[Path]) -> tuple[Path, ...]:
    """Expands directories into DDL files (sorted, recursive); keeps explicit files as given."""

    files: list[Path] = []
    for input_path in input_paths:
        if not input_path.exists():
            raise UserInputError(f"Input path does not exist: {input_path}")
        if input_path.is_dir():
            files.extend(
                sorted(
                    path
                    for path in input_path.rglob("*")
                    if path.is_file() and path.suffix.lower() in DDL_SUFFIXES
                )
            )
        else:
            files.append(input_path)

    if not files:
        raise UserInputError("No DDL files found in the given inputs")
    return tuple(files)


def run_parse(input_paths: Sequence[Path], jobs: int = 1) -> tuple[ParseResult, tuple[Path, ...]]:
    """Parses every input file; with jobs > 1 files are parsed in worker processes."""

    files = collect_input_files(input_paths)
    logger.info("parse started: files=%d, jobs=%d", len(files), jobs)

    if jobs > 1 and len(files) > 1:
        with ProcessPoolExecutor(max_workers=jobs) as executor:
            results = list(executor.map(parse_file, files))
    else:
        results = [parse_file(path) for path in files]

    merged = ParseResult(
        objects=tuple(obj for result in results for obj in result.objects),
        issues=tuple(issue for result in results for issue in result.issues),
    )
    logger.info(
        "parse completed: objects=%d, issues=%d", len(merged.objects), len(merged.issues)
    )
    return merged, files


def run_check(
    input_paths: Sequence[Path],
    config_path: Path | None = None,
    jobs: int = 1,
) -> CheckOutcome:
    """Runs config -> parse -> evaluate -> report. Configuration errors abort before parsing."""

    rules = load_rules(config_path)
    parse_result, files = run_parse(input_paths, jobs=jobs)
    return _check(parse_result, rules, files)


def check_text(
    text: str,
    config_path: Path | None = None,
    source: str = "<stdin>",
) -> CheckOutcome:
    """Same as run_check for an in-memory DDL buffer."""

    rules = load_rules(config_path)
    parse_result = parse_ddl(text, source=source)
    return _check(parse_result, rules, ())


def _check(
    parse_result: ParseResult,
    rules: Sequence[Rule],
    files: tuple[Path, ...],
) -> CheckOutcome:
    findings = evaluate(parse_result.objects, rules)
    report = build_report(findings, parse_result.objects, parse_result.issues)
    logger.info(
        "check completed: objects=%d, findings=%d, passed=%s",
        len(parse_result.objects),
        len(report.findings),
        report.passed,
    )
    return CheckOutcome(parse_result=parse_result, report=report, input_files=files)
