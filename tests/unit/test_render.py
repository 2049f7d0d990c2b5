from __future__ import annotations

from pathlib import Path

from ddl_linter.common import Column, DataType, ForeignKeyRef, ObjectKind, SchemaObject
from ddl_linter.parser import parse_ddl, parse_file, render_ddl

FIXTURES_DIR = Path(__file__).resolve().parents[1] / "fixtures" / "ddl"


def test_dimension_template_round_trip_is_stable() -> None:
    original = parse_file(FIXTURES_DIR / "dimension_template.sql").objects[0]

    rendered = render_ddl(original)
    reparsed = parse_ddl(rendered)

    assert reparsed.issues == ()
    assert reparsed.objects == (original,)
    assert render_ddl(reparsed.objects[0]) == rendered


def test_fact_template_round_trip_is_stable() -> None:
    originals = parse_file(FIXTURES_DIR / "fact_template.sql").objects

    for original in originals:
        reparsed = parse_ddl(render_ddl(original))
        assert reparsed.objects == (original,)


def test_render_quotes_identifiers_and_strings() -> None:
    obj = SchemaObject(
        name='EDW.CORE.d "odd" name',
        kind=ObjectKind.TABLE,
        columns=(
            Column(name="A_SK", data_type=DataType("NUMBER", ("38", "0")), nullable=False),
            Column(name="NOTE", data_type=DataType("VARCHAR"), comment="it's \\ fine"),
        ),
        primary_key=("A_SK",),
        foreign_keys=(
            ForeignKeyRef(
                constraint_name="",
                child_columns=("A_SK",),
                parent_table="D_OTHER",
                parent_columns=(),
            ),
        ),
    )

    rendered = render_ddl(obj)

    assert '"d ""odd"" name"' in rendered
    assert "COMMENT 'it''s \\\\ fine'" in rendered
    assert "FOREIGN KEY (A_SK) REFERENCES D_OTHER" in rendered
    assert parse_ddl(rendered).objects == (obj,)
