"""CLI 파서 구성."""

from __future__ import annotations

import argparse

from ddl_linter.cli.commands import COMMAND_MODULES


def build_parser() -> argparse.ArgumentParser:
    """메인 ArgumentParser를 생성하고 서브커맨드를 등록한다."""
    parser = argparse.ArgumentParser(prog="ddl-linter")
    parser.add_argument("--log-config", required=False, help="logging dictConfig YAML")
    parser.add_argument("--verbose", "-v", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for module in COMMAND_MODULES:
        module.configure(subparsers)

    return parser
