"""Rule engine: evaluates the rule set against parsed schema objects."""

from __future__ import annotations

import logging
from typing import Sequence

from ddl_linter.common import Finding, RuleEvaluationError, SchemaObject, Severity
from ddl_linter.rules import Rule

logger = logging.getLogger(__name__)


def evaluate(objects: Sequence[SchemaObject], rules: Sequence[Rule]) -> tuple[Finding, ...]:
    """Findings grouped by object (input order), then by rule registration order.

    A rule that raises is isolated: its failure becomes one INFO finding for
    that object and the remaining rules and objects are still evaluated.
    """

    findings: list[Finding] = []
    for obj in objects:
        for rule in rules:
            findings.extend(_evaluate_rule(rule, obj))
    return tuple(findings)


def _evaluate_rule(rule: Rule, obj: SchemaObject) -> tuple[Finding, ...]:
    try:
        if not rule.applies_to(obj):
            return ()
        return tuple(rule.evaluate(obj))
    except Exception as exc:
        error = RuleEvaluationError(rule.rule_id, obj.name, exc)
        logger.warning("%s (object=%s)", error, obj.name, exc_info=True)
        return (
            Finding(
                rule_id=rule.rule_id,
                severity=Severity.INFO,
                object_name=obj.name,
                message=str(error),
            ),
        )
