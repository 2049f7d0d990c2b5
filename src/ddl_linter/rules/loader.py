"""YAML 기반 규칙 설정 로딩."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from ddl_linter.common import ConfigurationError, Severity

from .catalog import get_registered_rules
from .models import RuleSetConfig, RuleSettings

logger = logging.getLogger(__name__)

_SETTING_KEYS = {"enabled", "severity"}


def load_rule_config(config_path: Path | None = None) -> RuleSetConfig:
    """rules YAML 로딩. 경로가 없으면 코드 기본값, 잘못된 설정은 ConfigurationError."""
    if config_path is None:
        return RuleSetConfig()

    data = _load_yaml(config_path)
    config = parse_rule_config(data)
    logger.info("rule config loaded: %s (%d rules configured)", config_path, len(config.rules))
    return config


def parse_rule_config(data: dict[str, Any]) -> RuleSetConfig:
    """이미 읽어 들인 매핑에서 RuleSetConfig를 만든다."""
    rules_raw = data.get("rules", {})
    if rules_raw is None:
        rules_raw = {}
    if not isinstance(rules_raw, dict):
        raise ConfigurationError("'rules' must be a mapping of rule id to settings")

    known = get_registered_rules()
    rules: dict[str, RuleSettings] = {}
    for rule_id, raw in rules_raw.items():
        rule_key = str(rule_id)
        if rule_key not in known:
            raise ConfigurationError(f"unknown rule: {rule_key}")
        rules[rule_key] = _parse_settings(rule_key, raw)

    return RuleSetConfig(rules=rules)


def _parse_settings(rule_id: str, raw: Any) -> RuleSettings:
    if raw is None:
        return RuleSettings()
    if isinstance(raw, bool):
        return RuleSettings(enabled=raw)
    if not isinstance(raw, dict):
        raise ConfigurationError(f"settings for rule {rule_id} must be a mapping")

    enabled = raw.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigurationError(f"rule {rule_id}: 'enabled' must be true or false")

    severity: Severity | None = None
    if raw.get("severity") is not None:
        severity = Severity.parse(raw["severity"])

    options = {str(key): value for key, value in raw.items() if key not in _SETTING_KEYS}
    return RuleSettings(enabled=enabled, severity=severity, options=options)


def _load_yaml(path: Path) -> dict[str, Any]:
    """YAML 파일 로딩. 실패는 설정 오류로 취급한다."""
    try:
        with open(path, encoding="utf-8") as f:
            result = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigurationError(f"cannot read rule config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid YAML in rule config {path}: {exc}") from exc

    if result is None:
        return {}
    if not isinstance(result, dict):
        raise ConfigurationError(f"rule config {path} must contain a mapping")
    return result
