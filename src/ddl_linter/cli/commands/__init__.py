"""CLI 커맨드 모듈."""

from __future__ import annotations

from types import ModuleType

from ddl_linter.cli.commands import check, parse, rules

COMMAND_MODULES: list[ModuleType] = [check, parse, rules]

__all__ = ["COMMAND_MODULES"]
