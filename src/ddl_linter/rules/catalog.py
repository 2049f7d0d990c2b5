"""Rule catalog: warehouse DDL standards as independent strategy objects."""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatchcase
import logging
from typing import Any, ClassVar, Mapping, TypeVar

from ddl_linter.common import (
    Column,
    ConfigurationError,
    DataType,
    Finding,
    ObjectKind,
    SchemaObject,
    Severity,
    parse_data_type,
    short_identifier,
)

from .models import Rule, RuleSetConfig

logger = logging.getLogger(__name__)

_RULE_REGISTRY: dict[str, type] = {}

RuleT = TypeVar("RuleT", bound=type)

DEFAULT_TABLE_PREFIXES = ("D_", "F_", "B_", "A_", "RPT_", "SRC_", "STG_", "REF_", "HIST_")
DEFAULT_VIEW_PREFIXES = ("VW_", "RPT_")
DEFAULT_MATERIALIZED_VIEW_PREFIXES = ("MV_",)
DEFAULT_AUDIT_COLUMNS = ("EDW_CREATED_AT", "EDW_UPDATED_AT", "EDW_PROCESSED_AT")
DEFAULT_PII_PATTERNS = ("*EMAIL*", "*NAME*", "*PHONE*", "*ADDRESS*", "*SSN*", "*BIRTH*")
DEFAULT_SUFFIX_TYPES = (
    ("_AMT", "NUMBER(18,2)"),
    ("_COUNT", "NUMBER(18,0)"),
    ("_NUM", "NUMBER(18,0)"),
    ("_FLAG", "BOOLEAN"),
    ("_AT", "TIMESTAMP_TZ(9)"),
)
DEFAULT_SCD2_COLUMNS = ("BEGIN_DATE", "END_DATE", "CURRENT_RECORD_FLAG", "HASH_CHECK_VALUE")
COLUMN_SCOPES = ("business", "pii", "none")

_MISSING = object()


def register_rule(cls: RuleT) -> RuleT:
    """규칙 클래스를 레지스트리에 등록하는 데코레이터. 등록 순서가 평가 순서다."""
    rule_id = getattr(cls, "rule_id", None)
    if not rule_id:
        raise ValueError(f"{cls.__name__} does not define rule_id")
    _RULE_REGISTRY[rule_id] = cls
    logger.debug("rule registered: %s", rule_id)
    return cls


def get_registered_rules() -> dict[str, type]:
    """등록된 규칙 클래스의 사본을 반환한다."""
    return dict(_RULE_REGISTRY)


def build_rule_set(config: RuleSetConfig | None = None) -> tuple[Rule, ...]:
    """Instantiates enabled rules in registration order."""
    config = config or RuleSetConfig()
    rules: list[Rule] = []
    for rule_id, rule_cls in _RULE_REGISTRY.items():
        settings = config.settings_for(rule_id)
        if not settings.enabled:
            logger.info("rule disabled by config: %s", rule_id)
            continue
        severity = settings.severity or rule_cls.default_severity
        rules.append(rule_cls.from_options(_Options(rule_id, settings.options), severity))
    return tuple(rules)


class _Options:
    """Typed accessors over raw YAML options; any mistake is a ConfigurationError."""

    def __init__(self, rule_id: str, raw: Mapping[str, Any]) -> None:
        self.rule_id = rule_id
        self.raw = raw

    def fail(self, message: str) -> ConfigurationError:
        return ConfigurationError(f"rule {self.rule_id}: {message}")

    def only(self, *allowed: str) -> None:
        unknown = sorted(set(self.raw) - set(allowed))
        if unknown:
            raise self.fail(f"unknown option(s): {', '.join(unknown)}")

    def string(self, key: str, default: str) -> str:
        value = self.raw.get(key, default)
        if not isinstance(value, str) or not value.strip():
            raise self.fail(f"'{key}' must be a non-empty string")
        return value.strip()

    def boolean(self, key: str, default: bool) -> bool:
        value = self.raw.get(key, default)
        if not isinstance(value, bool):
            raise self.fail(f"'{key}' must be true or false")
        return value

    def string_list(
        self,
        key: str,
        default: tuple[str, ...],
        value: Any = _MISSING,
        allow_empty: bool = False,
    ) -> tuple[str, ...]:
        value = self.raw.get(key, default) if value is _MISSING else value
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            raise self.fail(f"'{key}' must be a list of strings")
        if not value and not allow_empty:
            raise self.fail(f"'{key}' must not be empty")
        if not all(isinstance(item, str) and item.strip() for item in value):
            raise self.fail(f"'{key}' must contain non-empty strings only")
        return tuple(item.strip() for item in value)

    def data_type(self, key: str, value: Any) -> DataType:
        if not isinstance(value, str):
            raise self.fail(f"'{key}' must be a data type string")
        try:
            return parse_data_type(value)
        except ValueError as exc:
            raise self.fail(str(exc)) from exc

    def mapping(self, key: str) -> Mapping[str, Any] | None:
        value = self.raw.get(key)
        if value is None:
            return None
        if not isinstance(value, dict):
            raise self.fail(f"'{key}' must be a mapping")
        return value


def _finding(
    rule: Rule, obj: SchemaObject, message: str, column: Column | None = None
) -> Finding:
    return Finding(
        rule_id=rule.rule_id,
        severity=rule.severity,
        object_name=obj.name,
        column_name=column.name if column is not None else None,
        message=message,
    )


def _describe_type(data_type: DataType | None) -> str:
    return str(data_type) if data_type is not None else "no declared type"


@register_rule
@dataclass(frozen=True)
class NamingPrefixRule:
    rule_id: ClassVar[str] = "naming-prefix"
    description: ClassVar[str] = "object name starts with a prefix registered for its kind"
    default_severity: ClassVar[Severity] = Severity.ERROR

    severity: Severity
    prefixes: Mapping[ObjectKind, tuple[str, ...]]

    @classmethod
    def from_options(cls, options: _Options, severity: Severity) -> NamingPrefixRule:
        options.only("prefixes")
        prefixes: dict[ObjectKind, tuple[str, ...]] = {
            ObjectKind.TABLE: DEFAULT_TABLE_PREFIXES,
            ObjectKind.VIEW: DEFAULT_VIEW_PREFIXES,
            ObjectKind.MATERIALIZED_VIEW: DEFAULT_MATERIALIZED_VIEW_PREFIXES,
        }
        configured = options.mapping("prefixes")
        if configured is not None:
            for kind_name, values in configured.items():
                prefixes[ObjectKind.parse(kind_name)] = options.string_list(
                    f"prefixes.{kind_name}", (), value=values
                )
        return cls(severity=severity, prefixes=prefixes)

    def applies_to(self, obj: SchemaObject) -> bool:
        return bool(self.prefixes.get(obj.kind))

    def evaluate(self, obj: SchemaObject) -> tuple[Finding, ...]:
        allowed = self.prefixes.get(obj.kind, ())
        name = obj.short_name.upper()
        if any(name.startswith(prefix.upper()) for prefix in allowed):
            return ()
        return (
            _finding(
                self,
                obj,
                f"{obj.name} does not match any registered {obj.kind.label} prefix "
                f"(expected one of: {', '.join(allowed)})",
            ),
        )


@register_rule
@dataclass(frozen=True)
class AuditColumnsRule:
    rule_id: ClassVar[str] = "audit-columns"
    description: ClassVar[str] = "tables carry the EDW audit timestamp columns"
    default_severity: ClassVar[Severity] = Severity.ERROR

    severity: Severity
    required_columns: tuple[str, ...]
    data_type: DataType

    @classmethod
    def from_options(cls, options: _Options, severity: Severity) -> AuditColumnsRule:
        options.only("required_columns", "data_type")
        return cls(
            severity=severity,
            required_columns=options.string_list("required_columns", DEFAULT_AUDIT_COLUMNS),
            data_type=options.data_type("data_type", options.raw.get("data_type", "TIMESTAMP_TZ")),
        )

    def applies_to(self, obj: SchemaObject) -> bool:
        return obj.kind is ObjectKind.TABLE

    def evaluate(self, obj: SchemaObject) -> tuple[Finding, ...]:
        findings: list[Finding] = []
        for required in self.required_columns:
            column = obj.column(required)
            if column is None:
                findings.append(_finding(self, obj, f"missing audit column {required}"))
            elif column.data_type is None or not column.data_type.matches(self.data_type):
                findings.append(
                    _finding(
                        self,
                        obj,
                        f"audit column {column.name} must be {self.data_type}, "
                        f"found {_describe_type(column.data_type)}",
                        column,
                    )
                )
        return tuple(findings)


@register_rule
@dataclass(frozen=True)
class PrimaryKeyRule:
    rule_id: ClassVar[str] = "primary-key"
    description: ClassVar[str] = "tables declare a primary key"
    default_severity: ClassVar[Severity] = Severity.ERROR

    severity: Severity

    @classmethod
    def from_options(cls, options: _Options, severity: Severity) -> PrimaryKeyRule:
        options.only()
        return cls(severity=severity)

    def applies_to(self, obj: SchemaObject) -> bool:
        return obj.kind is ObjectKind.TABLE

    def evaluate(self, obj: SchemaObject) -> tuple[Finding, ...]:
        if obj.primary_key:
            return ()
        return (_finding(self, obj, "no primary key defined"),)


@register_rule
@dataclass(frozen=True)
class Scd2ColumnsRule:
    """SCD Type 2 tracking columns.

    Presence of the trigger column (BEGIN_DATE) marks the object as SCD2; it
    then needs the validity end column, a NOT NULL current-record flag and a
    change-detection hash. Type checks are skipped for columns without a
    declared type (view column lists).
    """

    rule_id: ClassVar[str] = "scd2-columns"
    description: ClassVar[str] = "SCD Type 2 objects carry end date, current flag and hash columns"
    default_severity: ClassVar[Severity] = Severity.ERROR

    severity: Severity
    trigger_column: str = "BEGIN_DATE"
    end_column: str = "END_DATE"
    flag_column: str = "CURRENT_RECORD_FLAG"
    flag_type: DataType = DataType("BOOLEAN")
    hash_column: str = "HASH_CHECK_VALUE"
    hash_type: DataType = DataType("BINARY")

    @classmethod
    def from_options(cls, options: _Options, severity: Severity) -> Scd2ColumnsRule:
        options.only(
            "trigger_column", "end_column", "flag_column", "flag_type", "hash_column", "hash_type"
        )
        return cls(
            severity=severity,
            trigger_column=options.string("trigger_column", cls.trigger_column),
            end_column=options.string("end_column", cls.end_column),
            flag_column=options.string("flag_column", cls.flag_column),
            flag_type=options.data_type("flag_type", options.raw.get("flag_type", "BOOLEAN")),
            hash_column=options.string("hash_column", cls.hash_column),
            hash_type=options.data_type("hash_type", options.raw.get("hash_type", "BINARY")),
        )

    def applies_to(self, obj: SchemaObject) -> bool:
        return obj.has_column(self.trigger_column)

    def evaluate(self, obj: SchemaObject) -> tuple[Finding, ...]:
        findings: list[Finding] = []
        trigger = self.trigger_column

        if not obj.has_column(self.end_column):
            findings.append(_finding(self, obj, f"{trigger} requires SCD2 column {self.end_column}"))

        flag = obj.column(self.flag_column)
        if flag is None:
            findings.append(_finding(self, obj, f"{trigger} requires SCD2 column {self.flag_column}"))
        else:
            findings.extend(self._check_type(obj, flag, self.flag_type))
            if obj.kind is ObjectKind.TABLE and flag.nullable:
                findings.append(_finding(self, obj, f"{flag.name} must be NOT NULL", flag))

        hash_value = obj.column(self.hash_column)
        if hash_value is None:
            findings.append(_finding(self, obj, f"{trigger} requires SCD2 column {self.hash_column}"))
        else:
            findings.extend(self._check_type(obj, hash_value, self.hash_type))

        return tuple(findings)

    def _check_type(self, obj: SchemaObject, column: Column, expected: DataType) -> list[Finding]:
        if column.data_type is None or column.data_type.matches(expected):
            return []
        return [
            _finding(
                self,
                obj,
                f"{column.name} must be {expected}, found {column.data_type}",
                column,
            )
        ]


@register_rule
@dataclass(frozen=True)
class FkNamingRule:
    rule_id: ClassVar[str] = "fk-naming"
    description: ClassVar[str] = "foreign key constraints are named FK_<table>_<parent>"
    default_severity: ClassVar[Severity] = Severity.WARNING

    severity: Severity
    pattern: str = "FK_{table}_{parent}"

    @classmethod
    def from_options(cls, options: _Options, severity: Severity) -> FkNamingRule:
        options.only("pattern")
        pattern = options.string("pattern", cls.pattern)
        try:
            pattern.format(table="T", parent="P")
        except (KeyError, IndexError, ValueError) as exc:
            raise options.fail(f"invalid pattern {pattern!r}: {exc}") from exc
        return cls(severity=severity, pattern=pattern)

    def applies_to(self, obj: SchemaObject) -> bool:
        return bool(obj.foreign_keys)

    def evaluate(self, obj: SchemaObject) -> tuple[Finding, ...]:
        findings: list[Finding] = []
        for foreign_key in obj.foreign_keys:
            expected = self.pattern.format(
                table=obj.short_name, parent=short_identifier(foreign_key.parent_table)
            )
            columns = ", ".join(foreign_key.child_columns)
            if not foreign_key.constraint_name:
                findings.append(
                    _finding(
                        self,
                        obj,
                        f"foreign key ({columns}) has no constraint name (expected {expected})",
                    )
                )
            elif short_identifier(foreign_key.constraint_name).upper() != expected.upper():
                findings.append(
                    _finding(
                        self,
                        obj,
                        f"foreign key {foreign_key.constraint_name} ({columns}) "
                        f"should be named {expected}",
                    )
                )
        return tuple(findings)


@register_rule
@dataclass(frozen=True)
class DataTypeRule:
    rule_id: ClassVar[str] = "data-type"
    description: ClassVar[str] = "columns with a semantic suffix use the prescribed data type"
    default_severity: ClassVar[Severity] = Severity.WARNING

    severity: Severity
    suffix_types: tuple[tuple[str, DataType], ...]

    @classmethod
    def from_options(cls, options: _Options, severity: Severity) -> DataTypeRule:
        options.only("suffix_types")
        configured = options.mapping("suffix_types")
        raw_items = configured.items() if configured is not None else DEFAULT_SUFFIX_TYPES
        suffix_types = tuple(
            (str(suffix).upper(), options.data_type(f"suffix_types.{suffix}", type_text))
            for suffix, type_text in raw_items
        )
        return cls(severity=severity, suffix_types=suffix_types)

    def applies_to(self, obj: SchemaObject) -> bool:
        return any(column.data_type is not None for column in obj.columns)

    def evaluate(self, obj: SchemaObject) -> tuple[Finding, ...]:
        findings: list[Finding] = []
        for column in obj.columns:
            if column.data_type is None:
                continue
            name = column.name.upper()
            # Every matching suffix is checked on its own; no precedence between suffixes.
            for suffix, expected in self.suffix_types:
                if name.endswith(suffix) and not column.data_type.matches(expected):
                    findings.append(
                        _finding(
                            self,
                            obj,
                            f"column {column.name} ends with {suffix} and should be {expected}, "
                            f"found {column.data_type}",
                            column,
                        )
                    )
        return tuple(findings)


def _matches_any(name: str, patterns: tuple[str, ...]) -> bool:
    upper_name = name.upper()
    return any(fnmatchcase(upper_name, pattern.upper()) for pattern in patterns)


@register_rule
@dataclass(frozen=True)
class PiiMaskingRule:
    rule_id: ClassVar[str] = "pii-masking"
    description: ClassVar[str] = "PII columns have a masking policy and a privacy category tag"
    default_severity: ClassVar[Severity] = Severity.ERROR

    severity: Severity
    patterns: tuple[str, ...] = DEFAULT_PII_PATTERNS
    required_tag: str = "PRIVACY_CATEGORY"

    @classmethod
    def from_options(cls, options: _Options, severity: Severity) -> PiiMaskingRule:
        options.only("patterns", "required_tag")
        return cls(
            severity=severity,
            patterns=options.string_list("patterns", DEFAULT_PII_PATTERNS),
            required_tag=options.string("required_tag", cls.required_tag).upper(),
        )

    def applies_to(self, obj: SchemaObject) -> bool:
        return bool(obj.columns)

    def evaluate(self, obj: SchemaObject) -> tuple[Finding, ...]:
        findings: list[Finding] = []
        for column in obj.columns:
            if not _matches_any(column.name, self.patterns):
                continue
            missing: list[str] = []
            if not (column.masking_policy or "").strip():
                missing.append("a masking policy")
            if not (column.tag(self.required_tag) or "").strip():
                missing.append(f"a {self.required_tag} tag")
            if missing:
                findings.append(
                    _finding(
                        self,
                        obj,
                        f"PII column {column.name} is missing {' and '.join(missing)}",
                        column,
                    )
                )
        return tuple(findings)


@register_rule
@dataclass(frozen=True)
class CommentsRule:
    """Objects and business/PII columns are documented.

    column_scope: ``business`` checks every column except the technical
    audit and SCD2 columns, ``pii`` checks PII columns only, ``none`` only
    checks the object comment.
    """

    rule_id: ClassVar[str] = "comments"
    description: ClassVar[str] = "objects and business or PII columns have comments"
    default_severity: ClassVar[Severity] = Severity.WARNING

    severity: Severity
    require_object_comment: bool = True
    column_scope: str = "business"
    pii_patterns: tuple[str, ...] = DEFAULT_PII_PATTERNS
    technical_columns: tuple[str, ...] = DEFAULT_AUDIT_COLUMNS + DEFAULT_SCD2_COLUMNS

    @classmethod
    def from_options(cls, options: _Options, severity: Severity) -> CommentsRule:
        options.only("require_object_comment", "column_scope", "pii_patterns", "technical_columns")
        column_scope = options.string("column_scope", cls.column_scope).lower()
        if column_scope not in COLUMN_SCOPES:
            raise options.fail(
                f"'column_scope' must be one of {', '.join(COLUMN_SCOPES)}, got {column_scope!r}"
            )
        return cls(
            severity=severity,
            require_object_comment=options.boolean(
                "require_object_comment", cls.require_object_comment
            ),
            column_scope=column_scope,
            pii_patterns=options.string_list("pii_patterns", DEFAULT_PII_PATTERNS),
            technical_columns=options.string_list(
                "technical_columns",
                DEFAULT_AUDIT_COLUMNS + DEFAULT_SCD2_COLUMNS,
                allow_empty=True,
            ),
        )

    def applies_to(self, obj: SchemaObject) -> bool:
        return True

    def evaluate(self, obj: SchemaObject) -> tuple[Finding, ...]:
        findings: list[Finding] = []
        if self.require_object_comment and not (obj.comment or "").strip():
            findings.append(_finding(self, obj, f"{obj.name} has no comment"))

        for column in obj.columns:
            if self._requires_comment(column) and not (column.comment or "").strip():
                findings.append(_finding(self, obj, f"column {column.name} has no comment", column))
        return tuple(findings)

    def _requires_comment(self, column: Column) -> bool:
        if self.column_scope == "none":
            return False
        if _matches_any(column.name, self.pii_patterns):
            return True
        if self.column_scope == "pii":
            return False
        technical = {name.upper() for name in self.technical_columns}
        return column.name.upper() not in technical


