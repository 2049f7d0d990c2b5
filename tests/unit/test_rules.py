"""rules 모듈 테스트."""

from __future__ import annotations

from pathlib import Path

import pytest

from ddl_linter.common import ConfigurationError, ObjectKind, Severity
from ddl_linter.parser import parse_ddl
from ddl_linter.rules import (
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
    load_rule_config,
    parse_rule_config,
)

CONFIGS_DIR = Path(__file__).resolve().parents[2] / "configs"


def _rule(rule_cls: type, **options: object):
    config = parse_rule_config({"rules": {rule_cls.rule_id: dict(options)}})
    return next(rule for rule in build_rule_set(config) if isinstance(rule, rule_cls))


def _table(ddl: str):
    result = parse_ddl(ddl)
    assert result.issues == ()
    return result.objects[0]


def test_registry_order_matches_checklist() -> None:
    assert list(get_registered_rules()) == [
        "naming-prefix",
        "audit-columns",
        "primary-key",
        "scd2-columns",
        "fk-naming",
        "data-type",
        "pii-masking",
        "comments",
    ]


def test_load_shipped_rule_config() -> None:
    """실제 rules/default.yaml 로딩 성공."""
    config = load_rule_config(CONFIGS_DIR / "rules" / "default.yaml")
    rules = build_rule_set(config)

    assert [rule.rule_id for rule in rules] == list(get_registered_rules())
    pii = next(rule for rule in rules if isinstance(rule, PiiMaskingRule))
    assert "*SSN*" in pii.patterns


def test_default_config_without_file() -> None:
    """경로가 없으면 코드 기본값."""
    rules = build_rule_set(load_rule_config(None))
    severities = {rule.rule_id: rule.severity for rule in rules}

    assert severities["naming-prefix"] is Severity.ERROR
    assert severities["fk-naming"] is Severity.WARNING
    assert severities["comments"] is Severity.WARNING


def test_disable_rule_and_override_severity() -> None:
    config = parse_rule_config(
        {"rules": {"comments": {"enabled": False}, "fk-naming": {"severity": "error"}}}
    )
    rules = build_rule_set(config)

    assert "comments" not in {rule.rule_id for rule in rules}
    assert next(rule for rule in rules if rule.rule_id == "fk-naming").severity is Severity.ERROR


@pytest.mark.parametrize(
    "data",
    [
        {"rules": {"no-such-rule": {}}},
        {"rules": {"comments": {"severity": "FATAL"}}},
        {"rules": {"comments": {"enabled": "yes"}}},
        {"rules": ["naming-prefix"]},
    ],
)
def test_invalid_config_raises(data: dict) -> None:
    with pytest.raises(ConfigurationError):
        parse_rule_config(data)


@pytest.mark.parametrize(
    "rules",
    [
        {"naming-prefix": {"prefixes": {"SYNONYM": ["S_"]}}},
        {"naming-prefix": {"prefixes": {"TABLE": None}}},
        {"naming-prefix": {"prefixes": {"VIEW": []}}},
        {"audit-columns": {"required_columns": []}},
        {"data-type": {"suffix_types": {"_AMT": "NUMBER(("}}},
        {"comments": {"column_scope": "everything"}},
        {"pii-masking": {"patterns": "*EMAIL*"}},
        {"fk-naming": {"pattern": "FK_{child}"}},
        {"primary-key": {"columns": ["ID"]}},
    ],
)
def test_invalid_rule_options_raise(rules: dict) -> None:
    with pytest.raises(ConfigurationError):
        build_rule_set(parse_rule_config({"rules": rules}))


def test_missing_or_broken_config_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_rule_config(tmp_path / "missing.yaml")

    broken = tmp_path / "broken.yaml"
    broken.write_text("rules: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_rule_config(broken)


def test_prefix_rule_reports_unregistered_table_name() -> None:
    rule = _rule(NamingPrefixRule)
    findings = rule.evaluate(_table("CREATE TABLE CUSTOMER (ID NUMBER(38,0));"))

    assert len(findings) == 1
    assert findings[0].severity is Severity.ERROR
    assert findings[0].message.startswith("CUSTOMER does not match any registered table prefix")


def test_prefix_rule_checks_prefix_by_kind_case_insensitively() -> None:
    rule = _rule(NamingPrefixRule)

    assert rule.evaluate(_table("CREATE TABLE edw.core.d_customer (ID INT);")) == ()
    view = parse_ddl("CREATE VIEW D_CUSTOMER_V AS SELECT 1;").objects[0]
    assert "registered view prefix" in rule.evaluate(view)[0].message


def test_prefix_rule_uses_configured_prefixes() -> None:
    rule = _rule(NamingPrefixRule, prefixes={"TABLE": ["DIM_"]})

    assert rule.evaluate(_table("CREATE TABLE DIM_CUSTOMER (ID INT);")) == ()
    assert rule.prefixes[ObjectKind.VIEW] == ("VW_", "RPT_")


def test_audit_rule_one_error_per_missing_column() -> None:
    rule = _rule(AuditColumnsRule)
    table = _table("CREATE TABLE D_X (X_SK INT, EDW_UPDATED_AT TIMESTAMP_TZ(9));")

    findings = rule.evaluate(table)

    assert [item.message for item in findings] == [
        "missing audit column EDW_CREATED_AT",
        "missing audit column EDW_PROCESSED_AT",
    ]
    assert all(item.column_name is None for item in findings)


def test_audit_rule_flags_wrong_type() -> None:
    rule = _rule(AuditColumnsRule)
    table = _table(
        "CREATE TABLE D_X (EDW_CREATED_AT TIMESTAMP_NTZ, EDW_UPDATED_AT TIMESTAMPTZ, "
        "EDW_PROCESSED_AT TIMESTAMP_TZ);"
    )

    findings = rule.evaluate(table)

    assert len(findings) == 1
    assert findings[0].column_name == "EDW_CREATED_AT"


def test_audit_rule_only_applies_to_tables() -> None:
    rule = _rule(AuditColumnsRule)

    assert rule.applies_to(parse_ddl("CREATE VIEW VW_X AS SELECT 1;").objects[0]) is False


def test_primary_key_rule() -> None:
    rule = _rule(PrimaryKeyRule)

    assert rule.evaluate(_table("CREATE TABLE D_X (A INT);"))[0].message == "no primary key defined"
    assert rule.evaluate(_table("CREATE TABLE D_X (A INT PRIMARY KEY);")) == ()


def test_scd2_rule_reports_each_missing_or_wrong_column() -> None:
    rule = _rule(Scd2ColumnsRule)
    table = _table(
        "CREATE TABLE D_X (BEGIN_DATE TIMESTAMP_TZ(9), CURRENT_RECORD_FLAG NUMBER(1,0), "
        "HASH_CHECK_VALUE VARCHAR(64));"
    )

    messages = [item.message for item in rule.evaluate(table)]

    assert messages == [
        "BEGIN_DATE requires SCD2 column END_DATE",
        "CURRENT_RECORD_FLAG must be BOOLEAN, found NUMBER(1,0)",
        "CURRENT_RECORD_FLAG must be NOT NULL",
        "HASH_CHECK_VALUE must be BINARY, found VARCHAR(64)",
    ]


def test_scd2_rule_skips_objects_without_begin_date() -> None:
    rule = _rule(Scd2ColumnsRule)

    assert rule.applies_to(_table("CREATE TABLE D_X (END_DATE DATE);")) is False


def test_fk_naming_rule_expects_table_and_parent_names() -> None:
    rule = _rule(FkNamingRule)
    table = _table(
        "CREATE TABLE F_ORDER (CUSTOMER_SK NUMBER(38,0), "
        "CONSTRAINT FK_WRONG FOREIGN KEY (CUSTOMER_SK) REFERENCES D_CUSTOMER(CUSTOMER_SK));"
    )

    findings = rule.evaluate(table)

    assert len(findings) == 1
    assert findings[0].severity is Severity.WARNING
    assert "FK_F_ORDER_D_CUSTOMER" in findings[0].message


def test_fk_naming_rule_accepts_qualified_names_and_flags_unnamed() -> None:
    rule = _rule(FkNamingRule)
    table = _table(
        "CREATE TABLE EDW.CORE.F_ORDER (A_SK INT, B_SK INT, "
        "CONSTRAINT fk_f_order_d_a FOREIGN KEY (A_SK) REFERENCES EDW.CORE.D_A (A_SK), "
        "FOREIGN KEY (B_SK) REFERENCES D_B (B_SK));"
    )

    findings = rule.evaluate(table)

    assert len(findings) == 1
    assert "has no constraint name (expected FK_F_ORDER_D_B)" in findings[0].message


def test_data_type_rule_by_suffix() -> None:
    rule = _rule(DataTypeRule)
    table = _table(
        "CREATE TABLE F_X (ORDER_AMT FLOAT, LINE_COUNT NUMBER(18,0), ITEM_NUM INTEGER, "
        "ACTIVE_FLAG BOOLEAN, LOADED_AT TIMESTAMP_TZ(6), PRICE_AMT DECIMAL(18,2));"
    )

    findings = rule.evaluate(table)

    assert [item.column_name for item in findings] == ["ORDER_AMT", "ITEM_NUM", "LOADED_AT"]
    assert all(item.severity is Severity.WARNING for item in findings)


def test_data_type_rule_emits_one_finding_per_matching_suffix() -> None:
    rule = _rule(DataTypeRule, suffix_types={"_AMT": "NUMBER(18,2)", "_USD_AMT": "NUMBER(38,2)"})
    table = _table("CREATE TABLE F_X (NET_USD_AMT FLOAT);")

    assert len(rule.evaluate(table)) == 2


def test_pii_rule_single_error_for_unmasked_email() -> None:
    rule = _rule(PiiMaskingRule)
    table = _table("CREATE TABLE D_CUSTOMER (CUSTOMER_EMAIL VARCHAR(500));")

    findings = rule.evaluate(table)

    assert len(findings) == 1
    assert findings[0].severity is Severity.ERROR
    assert findings[0].column_name == "CUSTOMER_EMAIL"
    assert "masking policy and a PRIVACY_CATEGORY tag" in findings[0].message


def test_pii_rule_requires_tag_even_when_masked() -> None:
    rule = _rule(PiiMaskingRule)
    table = _table(
        "CREATE TABLE D_CUSTOMER (HOME_PHONE VARCHAR(20) WITH MASKING POLICY PHONE_MASK, "
        "HOME_ADDRESS VARCHAR(200) WITH MASKING POLICY ADDR_MASK WITH TAG (PRIVACY_CATEGORY = 'PII'));"
    )

    findings = rule.evaluate(table)

    assert len(findings) == 1
    assert findings[0].message == "PII column HOME_PHONE is missing a PRIVACY_CATEGORY tag"


def test_comments_rule_scopes() -> None:
    table = _table(
        "CREATE TABLE D_X (X_SK INT, X_NAME VARCHAR(10), EDW_CREATED_AT TIMESTAMP_TZ(9)) "
        "COMMENT = 'documented';"
    )

    business = _rule(CommentsRule)
    pii_only = _rule(CommentsRule, column_scope="pii")
    no_columns = _rule(CommentsRule, column_scope="none")

    assert [item.column_name for item in business.evaluate(table)] == ["X_SK", "X_NAME"]
    assert [item.column_name for item in pii_only.evaluate(table)] == ["X_NAME"]
    assert no_columns.evaluate(table) == ()


def test_comments_rule_flags_missing_object_comment() -> None:
    rule = _rule(CommentsRule, column_scope="none")
    findings = rule.evaluate(_table("CREATE TABLE D_X (A INT) COMMENT = '  ';"))

    assert findings[0].message == "D_X has no comment"
    assert findings[0].column_name is None


def test_rules_do_not_mutate_objects() -> None:
    table = _table("CREATE TABLE CUSTOMER (CUSTOMER_EMAIL VARCHAR(5), BEGIN_DATE DATE);")
    snapshot = repr(table)

    for rule in build_rule_set():
        if rule.applies_to(table):
            rule.evaluate(table)

    assert repr(table) == snapshot


def test_builtin_pii_patterns_match_shipped_config() -> None:
    """--config 없이도 배포 설정과 동일한 PII 패턴."""
    shipped = build_rule_set(load_rule_config(CONFIGS_DIR / "rules" / "default.yaml"))
    builtin = build_rule_set()

    def patterns(rules: tuple) -> tuple[str, ...]:
        return next(rule for rule in rules if isinstance(rule, PiiMaskingRule)).patterns

    assert patterns(builtin) == patterns(shipped)

    findings = _rule(PiiMaskingRule).evaluate(
        _table("CREATE TABLE D_X (CUSTOMER_SSN VARCHAR(11), DATE_OF_BIRTH DATE);")
    )
    assert [item.column_name for item in findings] == ["CUSTOMER_SSN", "DATE_OF_BIRTH"]


def test_comments_rule_allows_empty_technical_columns() -> None:
    rule = _rule(CommentsRule, technical_columns=[])

    assert rule.technical_columns == ()
