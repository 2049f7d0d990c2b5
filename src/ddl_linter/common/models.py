"""Shared data models for DDL Linter."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
import re
from typing import Mapping

from ddl_linter.common.exceptions import ConfigurationError


class ObjectKind(str, Enum):
    TABLE = "TABLE"
    VIEW = "VIEW"
    MATERIALIZED_VIEW = "MATERIALIZED_VIEW"

    @property
    def label(self) -> str:
        return self.value.lower().replace("_", " ")

    @classmethod
    def parse(cls, name: str) -> "ObjectKind":
        normalized = str(name).strip().upper().replace(" ", "_")
        try:
            return cls(normalized)
        except ValueError:
            raise ConfigurationError(f"unknown object kind: {name}") from None


class Severity(str, Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, name: str) -> "Severity":
        """Case-insensitive lookup. Unknown names are a configuration mistake."""
        normalized = str(name).strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            raise ConfigurationError(f"unknown severity: {name}") from None


_SEVERITY_RANK = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}

_TYPE_ALIASES = {
    "DECIMAL": "NUMBER",
    "NUMERIC": "NUMBER",
    "INT": "NUMBER",
    "INTEGER": "NUMBER",
    "BIGINT": "NUMBER",
    "SMALLINT": "NUMBER",
    "BOOL": "BOOLEAN",
    "TIMESTAMPTZ": "TIMESTAMP_TZ",
    "TIMESTAMPLTZ": "TIMESTAMP_LTZ",
    "TIMESTAMPNTZ": "TIMESTAMP_NTZ",
    "DATETIME": "TIMESTAMP_NTZ",
    "STRING": "VARCHAR",
    "TEXT": "VARCHAR",
    "CHARACTER VARYING": "VARCHAR",
    "VARBINARY": "BINARY",
    "DOUBLE PRECISION": "FLOAT",
    "DOUBLE": "FLOAT",
    "REAL": "FLOAT",
}

_DATA_TYPE_PATTERN = re.compile(
    r"^\s*([A-Za-z_][A-Za-z0-9_]*(?:\s+[A-Za-z_][A-Za-z0-9_]*)*)\s*(?:\(\s*([^()]*?)\s*\))?\s*$"
)


@dataclass(frozen=True)
class DataType:
    base: str
    params: tuple[str, ...] = ()

    def __str__(self) -> str:
        if not self.params:
            return self.base
        return f"{self.base}({','.join(self.params)})"

    @property
    def canonical_base(self) -> str:
        return _TYPE_ALIASES.get(self.base, self.base)

    def same_base(self, other: DataType) -> bool:
        return self.canonical_base == other.canonical_base

    def matches(self, expected: DataType) -> bool:
        """Base types compare through aliases; parameters only when expected declares them."""
        if not self.same_base(expected):
            return False
        if expected.params and self.params != expected.params:
            return False
        return True


def parse_data_type(text: str) -> DataType:
    matched = _DATA_TYPE_PATTERN.match(text)
    if matched is None:
        raise ValueError(f"invalid data type: {text!r}")
    base = re.sub(r"\s+", " ", matched.group(1)).upper()
    raw_params = matched.group(2)
    params: tuple[str, ...] = ()
    if raw_params:
        params = tuple(part.strip().upper() for part in raw_params.split(","))
    return DataType(base=base, params=params)


@dataclass(frozen=True)
class Column:
    name: str
    data_type: DataType | None = None
    nullable: bool = True
    default_expr: str | None = None
    masking_policy: str | None = None
    tags: Mapping[str, str] = field(default_factory=dict)
    comment: str | None = None

    def tag(self, name: str) -> str | None:
        return self.tags.get(name.upper())

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "data_type": str(self.data_type) if self.data_type is not None else None,
            "nullable": self.nullable,
            "default": self.default_expr,
            "masking_policy": self.masking_policy,
            "tags": dict(self.tags),
            "comment": self.comment,
        }


@dataclass(frozen=True)
class ForeignKeyRef:
    constraint_name: str
    child_columns: tuple[str, ...]
    parent_table: str
    parent_columns: tuple[str, ...]
    enforced: bool = True


@dataclass(frozen=True)
class SchemaObject:
    name: str
    kind: ObjectKind
    columns: tuple[Column, ...] = ()
    primary_key: tuple[str, ...] = ()
    foreign_keys: tuple[ForeignKeyRef, ...] = ()
    comment: str | None = None
    tags: Mapping[str, str] = field(default_factory=dict)
    query: str | None = field(default=None, compare=False)
    source: str = field(default="<string>", compare=False)
    statement_index: int = field(default=0, compare=False)

    @property
    def short_name(self) -> str:
        return short_identifier(self.name)

    def column(self, name: str) -> Column | None:
        wanted = name.upper()
        for item in self.columns:
            if item.name.upper() == wanted:
                return item
        return None

    def has_column(self, name: str) -> bool:
        return self.column(name) is not None

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "source": self.source,
            "statement": self.statement_index,
            "columns": [item.to_dict() for item in self.columns],
            "primary_key": list(self.primary_key),
            "foreign_keys": [
                {
                    "constraint_name": item.constraint_name,
                    "child_columns": list(item.child_columns),
                    "parent_table": item.parent_table,
                    "parent_columns": list(item.parent_columns),
                    "enforced": item.enforced,
                }
                for item in self.foreign_keys
            ],
            "comment": self.comment,
            "tags": dict(self.tags),
        }


def short_identifier(name: str) -> str:
    """Last segment of a qualified identifier (DB.SCHEMA.NAME -> NAME)."""
    return name.rsplit(".", 1)[-1]


@dataclass(frozen=True)
class ParseIssue:
    statement_index: int
    offset: int
    message: str
    object_name: str | None = None
    source: str = "<string>"

    @property
    def label(self) -> str:
        return self.object_name or f"<statement {self.statement_index} in {self.source}>"


@dataclass(frozen=True)
class ParseResult:
    objects: tuple[SchemaObject, ...]
    issues: tuple[ParseIssue, ...] = ()


@dataclass(frozen=True)
class Finding:
    rule_id: str
    severity: Severity
    object_name: str
    message: str
    column_name: str | None = None

    def to_record(self) -> dict[str, object]:
        return {
            "object": self.object_name,
            "column": self.column_name,
            "rule_id": self.rule_id,
            "severity": self.severity.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class ObjectSection:
    object_name: str
    findings: tuple[Finding, ...] = ()


@dataclass(frozen=True)
class Report:
    sections: tuple[ObjectSection, ...]
    counts: Mapping[Severity, int]

    @property
    def findings(self) -> tuple[Finding, ...]:
        return tuple(item for section in self.sections for item in section.findings)

    @property
    def passed(self) -> bool:
        return not self.failed(Severity.ERROR)

    def failed(self, threshold: Severity = Severity.ERROR) -> bool:
        """True when any finding is at least as severe as threshold."""
        return any(
            count > 0 for severity, count in self.counts.items() if severity.rank <= threshold.rank
        )

    def to_dict(self) -> dict[str, object]:
        summary: dict[str, object] = {
            "objects": len(self.sections),
            "findings": sum(self.counts.values()),
        }
        summary.update({severity.value: self.counts.get(severity, 0) for severity in Severity})
        return {
            "passed": self.passed,
            "summary": summary,
            "objects": [
                {
                    "object": section.object_name,
                    "findings": [item.to_record() for item in section.findings],
                }
                for section in self.sections
            ],
            "findings": [item.to_record() for item in self.findings],
        }


@dataclass(frozen=True)
class CheckOutcome:
    parse_result: ParseResult
    report: Report
    input_files: tuple[Path, ...] = ()

    def failed(self, threshold: Severity = Severity.ERROR) -> bool:
        return self.report.failed(threshold)
