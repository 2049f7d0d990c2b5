"""Renders schema objects back to canonical DDL text."""

from __future__ import annotations

import re
from typing import Mapping

from ddl_linter.common import Column, ForeignKeyRef, ObjectKind, SchemaObject

_PLAIN_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")

_KIND_KEYWORDS = {
    ObjectKind.TABLE: "TABLE",
    ObjectKind.VIEW: "VIEW",
    ObjectKind.MATERIALIZED_VIEW: "MATERIALIZED VIEW",
}


def render_ddl(obj: SchemaObject) -> str:
    """CREATE 문을 정규화된 형태로 직렬화한다. parse_ddl로 다시 읽으면 같은 객체가 된다."""

    lines = [f"CREATE OR REPLACE {_KIND_KEYWORDS[obj.kind]} {_qualified(obj.name)}"]

    elements = [f"    {_render_column(column, obj.kind)}" for column in obj.columns]
    if obj.kind is ObjectKind.TABLE:
        if obj.primary_key:
            elements.append(f"    PRIMARY KEY ({_name_list(obj.primary_key)})")
        elements.extend(f"    {_render_foreign_key(item)}" for item in obj.foreign_keys)

    if elements:
        lines[0] += " ("
        lines.append(",\n".join(elements))
        lines.append(")")

    if obj.tags:
        lines.append(f"WITH TAG ({_render_tags(obj.tags)})")
    if obj.comment is not None:
        lines.append(f"COMMENT = {_quote_string(obj.comment)}")
    if obj.kind is not ObjectKind.TABLE:
        lines.append(f"AS {obj.query or 'SELECT 1'}")

    return "\n".join(lines) + ";\n"


def render_all(objects: tuple[SchemaObject, ...]) -> str:
    return "\n".join(render_ddl(item) for item in objects)


def _render_column(column: Column, kind: ObjectKind) -> str:
    parts = [_identifier(column.name)]
    if kind is ObjectKind.TABLE and column.data_type is not None:
        parts.append(str(column.data_type))
    if not column.nullable:
        parts.append("NOT NULL")
    if column.default_expr is not None:
        parts.append(f"DEFAULT {column.default_expr}")
    if column.masking_policy:
        parts.append(f"WITH MASKING POLICY {_qualified(column.masking_policy)}")
    if column.tags:
        parts.append(f"WITH TAG ({_render_tags(column.tags)})")
    if column.comment is not None:
        parts.append(f"COMMENT {_quote_string(column.comment)}")
    return " ".join(parts)


def _render_foreign_key(item: ForeignKeyRef) -> str:
    text = ""
    if item.constraint_name:
        text = f"CONSTRAINT {_qualified(item.constraint_name)} "
    text += f"FOREIGN KEY ({_name_list(item.child_columns)}) REFERENCES {_qualified(item.parent_table)}"
    if item.parent_columns:
        text += f" ({_name_list(item.parent_columns)})"
    if not item.enforced:
        text += " NOT ENFORCED"
    return text


def _render_tags(tags: Mapping[str, str]) -> str:
    return ", ".join(f"{_identifier(name)} = {_quote_string(value)}" for name, value in tags.items())


def _name_list(names: tuple[str, ...]) -> str:
    return ", ".join(_identifier(name) for name in names)


def _qualified(name: str) -> str:
    return ".".join(_identifier(part) for part in name.split("."))


def _identifier(name: str) -> str:
    if _PLAIN_IDENTIFIER.match(name):
        return name
    return '"' + name.replace('"', '""') + '"'


def _quote_string(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "''") + "'"
