"""규칙 설정 모델."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Protocol

from ddl_linter.common import Finding, SchemaObject, Severity


@dataclass(frozen=True)
class RuleSettings:
    """개별 규칙 설정. severity가 None이면 규칙 기본값을 사용한다."""

    enabled: bool = True
    severity: Severity | None = None
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RuleSetConfig:
    """규칙 세트 설정 (rules/default.yaml)."""

    rules: Mapping[str, RuleSettings] = field(default_factory=dict)

    def settings_for(self, rule_id: str) -> RuleSettings:
        return self.rules.get(rule_id, RuleSettings())


class Rule(Protocol):
    """Rule contract: a pure check from one schema object to zero or more findings."""

    rule_id: ClassVar[str]
    description: ClassVar[str]
    default_severity: ClassVar[Severity]
    severity: Severity

    def applies_to(self, obj: SchemaObject) -> bool:
        ...

    def evaluate(self, obj: SchemaObject) -> tuple[Finding, ...]:
        ...
