"""rules 커맨드 핸들러: 활성 규칙 목록."""

from __future__ import annotations

import argparse
from pathlib import Path

from ddl_linter.pipeline import load_rules


def configure(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("rules", help="활성화된 규칙을 나열한다")
    parser.add_argument("--config", required=False)
    parser.set_defaults(handler=execute)


def execute(args: argparse.Namespace) -> int:
    rules = load_rules(Path(args.config) if args.config else None)
    for rule in rules:
        print(f"{rule.rule_id:<14} {rule.severity.value:<7} {rule.description}")
    return 0
