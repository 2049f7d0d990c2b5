"""규칙 설정 및 카탈로그 모듈."""

from .catalog import (
    AuditColumnsRule,
    CommentsRule,
    DataTypeRule,
    FkNamingRule,
    NamingPrefixRule,
    PiiMaskingRule,
    PrimaryKeyRule,
    Scd2ColumnsRule,
    build_rule_set,
    get_registered_rules,
    register_rule,
)
from .loader import load_rule_config, parse_rule_config
from .models import Rule, RuleSetConfig, RuleSettings

__all__ = [
    "AuditColumnsRule",
    "CommentsRule",
    "DataTypeRule",
    "FkNamingRule",
    "NamingPrefixRule",
    "PiiMaskingRule",
    "PrimaryKeyRule",
    "Rule",
    "RuleSetConfig",
    "RuleSettings",
    "Scd2ColumnsRule",
    "build_rule_set",
    "get_registered_rules",
    "load_rule_config",
    "parse_rule_config",
    "register_rule",
]
