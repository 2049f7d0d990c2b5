"""Parser service for CREATE TABLE / CREATE VIEW statements."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Sequence

from ddl_linter.common import (
    Column,
    DataType,
    ForeignKeyRef,
    ObjectKind,
    ParseError,
    ParseIssue,
    ParseResult,
    SchemaObject,
    UserInputError,
)
from ddl_linter.parser.lexer import (
    Statement,
    Token,
    split_statements,
    unquote_identifier,
    unquote_string,
)

logger = logging.getLogger(__name__)

_CREATE_MODIFIERS = {
    "TRANSIENT",
    "TEMPORARY",
    "TEMP",
    "VOLATILE",
    "LOCAL",
    "GLOBAL",
    "SECURE",
    "RECURSIVE",
}

# Words that start a new column clause; a DEFAULT expression stops before them.
_COLUMN_CLAUSE_WORDS = {
    "NOT",
    "NULL",
    "DEFAULT",
    "PRIMARY",
    "UNIQUE",
    "REFERENCES",
    "CONSTRAINT",
    "FOREIGN",
    "WITH",
    "MASKING",
    "PROJECTION",
    "TAG",
    "COMMENT",
    "COLLATE",
    "AUTOINCREMENT",
    "IDENTITY",
}

_CONSTRAINT_FLAG_WORDS = {
    "DEFERRABLE",
    "INITIALLY",
    "DEFERRED",
    "IMMEDIATE",
    "ENABLE",
    "DISABLE",
    "VALIDATE",
    "NOVALIDATE",
    "RELY",
    "NORELY",
}

_REFERENTIAL_ACTIONS = ("CASCADE", "RESTRICT", "NO ACTION", "SET NULL", "SET DEFAULT")


def parse_ddl(text: str, source: str = "<string>") -> ParseResult:
    """Parses DDL text and returns fail-soft results (partial objects plus issues)."""

    objects: list[SchemaObject] = []
    issues: list[ParseIssue] = []

    for statement in split_statements(text):
        parsed = _StatementParser(statement, text, source, issues).parse()
        if parsed is not None:
            objects.append(parsed)

    return ParseResult(objects=tuple(objects), issues=tuple(issues))


def parse_files(paths: Sequence[Path]) -> ParseResult:
    """Parses each file in order and merges the results."""

    objects: list[SchemaObject] = []
    issues: list[ParseIssue] = []
    for path in paths:
        result = parse_file(path)
        objects.extend(result.objects)
        issues.extend(result.issues)
    return ParseResult(objects=tuple(objects), issues=tuple(issues))


def parse_file(path: Path) -> ParseResult:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise UserInputError(f"failed to read DDL file {path}: {exc}") from exc

    result = parse_ddl(text, source=str(path))
    logger.info(
        "parsed %s: objects=%d, issues=%d", path, len(result.objects), len(result.issues)
    )
    return result


class _Cursor:
    """Token cursor over one statement or one parenthesized element."""

    def __init__(self, tokens: Sequence[Token], statement_index: int, end_offset: int) -> None:
        self.tokens = tokens
        self.pos = 0
        self.statement_index = statement_index
        self.end_offset = end_offset

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def peek(self, ahead: int = 0) -> Token | None:
        index = self.pos + ahead
        if index < len(self.tokens):
            return self.tokens[index]
        return None

    def offset(self) -> int:
        token = self.peek()
        return token.offset if token is not None else self.end_offset

    def error(self, message: str) -> ParseError:
        return ParseError(message, statement_index=self.statement_index, offset=self.offset())

    def unexpected(self, context: str) -> ParseError:
        token = self.peek()
        found = repr(token.value) if token is not None else "end of statement"
        return self.error(f"unexpected {found} in {context}")

    def next(self) -> Token:
        token = self.peek()
        if token is None:
            raise self.error("unexpected end of statement")
        self.pos += 1
        return token

    def peek_upper(self) -> str:
        token = self.peek()
        if token is None or token.kind != "word":
            return ""
        return token.upper

    def at_words(self, *words: str) -> bool:
        for ahead, word in enumerate(words):
            token = self.peek(ahead)
            if token is None or not token.is_word(word):
                return False
        return True

    def accept_words(self, *words: str) -> bool:
        if not self.at_words(*words):
            return False
        self.pos += len(words)
        return True

    def expect_words(self, *words: str) -> None:
        if not self.accept_words(*words):
            raise self.error(f"expected {' '.join(words)}")

    def at_punct(self, value: str) -> bool:
        token = self.peek()
        return token is not None and token.is_punct(value)

    def accept_punct(self, value: str) -> bool:
        if not self.at_punct(value):
            return False
        self.pos += 1
        return True

    def expect_punct(self, value: str) -> None:
        if not self.accept_punct(value):
            raise self.error(f"expected {value!r}")

    def read_identifier(self) -> str:
        token = self.peek()
        if token is None or token.kind not in {"word", "quoted"}:
            raise self.error("expected identifier")
        self.pos += 1
        return unquote_identifier(token)

    def read_qualified_name(self) -> str:
        parts = [self.read_identifier()]
        while self.accept_punct("."):
            parts.append(self.read_identifier())
        return ".".join(parts)

    def read_string(self) -> str:
        token = self.peek()
        if token is None or token.kind != "string":
            raise self.error("expected string literal")
        self.pos += 1
        return unquote_string(token)

    def read_group(self) -> tuple[Token, ...]:
        """Consumes a balanced `( ... )` group and returns the inner tokens."""
        open_token = self.peek()
        self.expect_punct("(")
        depth = 1
        start = self.pos
        while not self.at_end():
            token = self.tokens[self.pos]
            self.pos += 1
            if token.is_punct("("):
                depth += 1
            elif token.is_punct(")"):
                depth -= 1
                if depth == 0:
                    return tuple(self.tokens[start : self.pos - 1])
        offset = open_token.offset if open_token is not None else self.end_offset
        raise ParseError(
            "unbalanced parentheses", statement_index=self.statement_index, offset=offset
        )

    def skip_atom(self) -> None:
        if self.at_punct("("):
            self.read_group()
        else:
            self.next()

    def sub_cursor(self, tokens: Sequence[Token]) -> _Cursor:
        end_offset = tokens[-1].end if tokens else self.offset()
        return _Cursor(tokens, self.statement_index, end_offset)


@dataclass
class _ColumnState:
    name: str
    data_type: DataType | None = None
    nullable: bool = True
    default_expr: str | None = None
    masking_policy: str | None = None
    tags: dict[str, str] = field(default_factory=dict)
    comment: str | None = None

    def build(self) -> Column:
        return Column(
            name=self.name,
            data_type=self.data_type,
            nullable=self.nullable,
            default_expr=self.default_expr,
            masking_policy=self.masking_policy,
            tags=dict(self.tags),
            comment=self.comment,
        )


@dataclass
class _ObjectState:
    name: str
    kind: ObjectKind
    columns: list[Column] = field(default_factory=list)
    primary_key: list[str] = field(default_factory=list)
    foreign_keys: list[ForeignKeyRef] = field(default_factory=list)
    comment: str | None = None
    tags: dict[str, str] = field(default_factory=dict)
    query: str | None = None

    def add_primary_key(self, names: Sequence[str]) -> None:
        known = {item.upper() for item in self.primary_key}
        for name in names:
            if name.upper() not in known:
                known.add(name.upper())
                self.primary_key.append(name)


class _StatementParser:
    def __init__(
        self,
        statement: Statement,
        text: str,
        source: str,
        issues: list[ParseIssue],
    ) -> None:
        end_offset = statement.tokens[-1].end if statement.tokens else 0
        self.cursor = _Cursor(statement.tokens, statement.index, end_offset)
        self.statement = statement
        self.text = text
        self.source = source
        self.issues = issues
        self.state: _ObjectState | None = None

    def parse(self) -> SchemaObject | None:
        try:
            header = self._parse_header()
            if header is None:
                logger.debug(
                    "skipping statement %d in %s: not a CREATE TABLE/VIEW",
                    self.statement.index,
                    self.source,
                )
                return None
            self.state = _ObjectState(name=header[1], kind=header[0])
            if self.state.kind is ObjectKind.TABLE:
                self._parse_table_body()
            else:
                self._parse_view_body()
        except ParseError as exc:
            self._record(exc)
            if self.state is None:
                return None

        if not self.statement.terminated:
            self._record(
                ParseError(
                    "missing ';' before the next CREATE statement",
                    statement_index=self.statement.index,
                    offset=self.cursor.end_offset,
                )
            )
        return self._build()

    def _record(self, exc: ParseError) -> None:
        object_name = self.state.name if self.state is not None else None
        self.issues.append(
            ParseIssue(
                statement_index=exc.statement_index,
                offset=exc.offset,
                message=exc.message,
                object_name=object_name,
                source=self.source,
            )
        )

    def _parse_header(self) -> tuple[ObjectKind, str] | None:
        cursor = self.cursor
        if not cursor.accept_words("CREATE"):
            return None
        cursor.accept_words("OR", "REPLACE")
        while cursor.peek_upper() in _CREATE_MODIFIERS:
            cursor.next()

        if cursor.accept_words("MATERIALIZED", "VIEW"):
            kind = ObjectKind.MATERIALIZED_VIEW
        elif cursor.accept_words("TABLE"):
            kind = ObjectKind.TABLE
        elif cursor.accept_words("VIEW"):
            kind = ObjectKind.VIEW
        else:
            return None

        cursor.accept_words("IF", "NOT", "EXISTS")
        return kind, cursor.read_qualified_name()

    def _parse_table_body(self) -> None:
        cursor = self.cursor
        state = self.state
        assert state is not None

        if cursor.at_punct("("):
            body = cursor.read_group()
            for element in _split_top_level(body):
                element_cursor = cursor.sub_cursor(element)
                try:
                    self._parse_table_element(element_cursor)
                except ParseError as exc:
                    self._record(exc)

        self._parse_properties(stop_at_as=True)

    def _parse_view_body(self) -> None:
        cursor = self.cursor
        state = self.state
        assert state is not None

        if cursor.at_punct("("):
            body = cursor.read_group()
            for element in _split_top_level(body):
                element_cursor = cursor.sub_cursor(element)
                try:
                    column = self._parse_column(element_cursor, with_type=False)
                except ParseError as exc:
                    self._record(exc)
                    continue
                state.columns.append(column)

        self._parse_properties(stop_at_as=True)
        if cursor.accept_words("AS"):
            if cursor.at_end():
                raise cursor.error("missing view query after AS")
            start = cursor.offset()
            state.query = self.text[start : cursor.end_offset].strip()
            cursor.pos = len(cursor.tokens)

    def _parse_properties(self, stop_at_as: bool) -> None:
        cursor = self.cursor
        state = self.state
        assert state is not None

        while not cursor.at_end():
            if stop_at_as and cursor.at_words("AS"):
                return
            if cursor.accept_words("COMMENT"):
                cursor.accept_punct("=")
                state.comment = cursor.read_string()
            elif cursor.at_words("WITH", "TAG") or cursor.at_words("TAG"):
                cursor.accept_words("WITH")
                cursor.next()
                state.tags.update(_parse_tags(cursor))
            else:
                cursor.skip_atom()

    def _parse_table_element(self, cursor: _Cursor) -> None:
        state = self.state
        assert state is not None

        constraint_name: str | None = None
        if cursor.accept_words("CONSTRAINT"):
            constraint_name = cursor.read_qualified_name()
        elif not (
            cursor.at_words("PRIMARY", "KEY")
            or cursor.at_words("FOREIGN", "KEY")
            or (cursor.at_words("UNIQUE") and _is_punct(cursor.peek(1), "("))
        ):
            state.columns.append(self._parse_column(cursor, with_type=True))
            return

        if cursor.accept_words("PRIMARY", "KEY"):
            state.add_primary_key(_parse_name_list(cursor))
            _parse_constraint_flags(cursor)
        elif cursor.accept_words("UNIQUE"):
            _parse_name_list(cursor)
            _parse_constraint_flags(cursor)
        elif cursor.accept_words("FOREIGN", "KEY"):
            child_columns = _parse_name_list(cursor)
            cursor.expect_words("REFERENCES")
            parent_table = cursor.read_qualified_name()
            parent_columns: tuple[str, ...] = ()
            if cursor.at_punct("("):
                parent_columns = _parse_name_list(cursor)
            enforced = _parse_constraint_flags(cursor)
            state.foreign_keys.append(
                ForeignKeyRef(
                    constraint_name=constraint_name or "",
                    child_columns=child_columns,
                    parent_table=parent_table,
                    parent_columns=parent_columns,
                    enforced=enforced,
                )
            )
        else:
            raise cursor.error(f"unsupported constraint {constraint_name}")

        if not cursor.at_end():
            raise cursor.unexpected("constraint")

    def _parse_column(self, cursor: _Cursor, with_type: bool) -> Column:
        column = _ColumnState(name=cursor.read_identifier())
        try:
            if with_type:
                column.data_type = _parse_data_type(cursor, column.name)
            self._parse_column_clauses(cursor, column)
        except ParseError as exc:
            # The column is kept with whatever was read before the failure.
            self._record(exc)
        return column.build()

    def _parse_column_clauses(self, cursor: _Cursor, column: _ColumnState) -> None:
        state = self.state
        assert state is not None

        while not cursor.at_end():
            if cursor.accept_words("NOT", "NULL"):
                column.nullable = False
            elif cursor.accept_words("NULL"):
                column.nullable = True
            elif cursor.accept_words("DEFAULT"):
                column.default_expr = self._read_expression(cursor)
            elif cursor.accept_words("AUTOINCREMENT") or cursor.accept_words("IDENTITY"):
                _skip_identity_options(cursor)
            elif cursor.accept_words("COLLATE"):
                cursor.read_string()
            elif cursor.accept_words("PRIMARY", "KEY"):
                state.add_primary_key([column.name])
                _parse_constraint_flags(cursor)
            elif cursor.accept_words("UNIQUE"):
                _parse_constraint_flags(cursor)
            elif cursor.at_words("CONSTRAINT") or cursor.at_words("REFERENCES") or cursor.at_words(
                "FOREIGN", "KEY"
            ):
                self._parse_inline_constraint(cursor, column)
            elif cursor.at_words("WITH", "MASKING") or cursor.at_words("MASKING"):
                cursor.accept_words("WITH")
                cursor.expect_words("MASKING", "POLICY")
                column.masking_policy = cursor.read_qualified_name()
                if cursor.accept_words("USING"):
                    cursor.read_group()
            elif cursor.at_words("WITH", "PROJECTION") or cursor.at_words("PROJECTION"):
                cursor.accept_words("WITH")
                cursor.expect_words("PROJECTION", "POLICY")
                cursor.read_qualified_name()
            elif cursor.at_words("WITH", "TAG") or cursor.at_words("TAG"):
                cursor.accept_words("WITH")
                cursor.next()
                column.tags.update(_parse_tags(cursor))
            elif cursor.accept_words("COMMENT"):
                cursor.accept_punct("=")
                column.comment = cursor.read_string()
            else:
                raise cursor.unexpected(f"column {column.name}")

    def _parse_inline_constraint(self, cursor: _Cursor, column: _ColumnState) -> None:
        state = self.state
        assert state is not None

        constraint_name = ""
        if cursor.accept_words("CONSTRAINT"):
            constraint_name = cursor.read_qualified_name()
        if cursor.accept_words("PRIMARY", "KEY"):
            state.add_primary_key([column.name])
            _parse_constraint_flags(cursor)
            return
        if cursor.accept_words("UNIQUE"):
            _parse_constraint_flags(cursor)
            return

        cursor.accept_words("FOREIGN", "KEY")
        cursor.expect_words("REFERENCES")
        parent_table = cursor.read_qualified_name()
        parent_columns: tuple[str, ...] = ()
        if cursor.at_punct("("):
            parent_columns = _parse_name_list(cursor)
        enforced = _parse_constraint_flags(cursor)
        state.foreign_keys.append(
            ForeignKeyRef(
                constraint_name=constraint_name,
                child_columns=(column.name,),
                parent_table=parent_table,
                parent_columns=parent_columns,
                enforced=enforced,
            )
        )

    def _read_expression(self, cursor: _Cursor) -> str:
        if cursor.at_end():
            raise cursor.error("missing DEFAULT expression")
        start = cursor.offset()
        cursor.skip_atom()
        end = cursor.tokens[cursor.pos - 1].end
        while not cursor.at_end() and cursor.peek_upper() not in _COLUMN_CLAUSE_WORDS:
            cursor.skip_atom()
            end = cursor.tokens[cursor.pos - 1].end
        return self.text[start:end].strip()

    def _reconcile_primary_key(self) -> None:
        state = self.state
        assert state is not None

        column_names = {item.name.upper() for item in state.columns}
        kept: list[str] = []
        for name in state.primary_key:
            if name.upper() in column_names:
                kept.append(name)
                continue
            self.issues.append(
                ParseIssue(
                    statement_index=self.statement.index,
                    offset=self.statement.offset,
                    message=f"primary key references unknown column {name}",
                    object_name=state.name,
                    source=self.source,
                )
            )
        state.primary_key = kept

    def _build(self) -> SchemaObject:
        state = self.state
        assert state is not None

        if state.kind is ObjectKind.TABLE:
            self._reconcile_primary_key()
        return SchemaObject(
            name=state.name,
            kind=state.kind,
            columns=tuple(state.columns),
            primary_key=tuple(state.primary_key),
            foreign_keys=tuple(state.foreign_keys),
            comment=state.comment,
            tags=dict(state.tags),
            query=state.query,
            source=self.source,
            statement_index=self.statement.index,
        )


def _is_punct(token: Token | None, value: str) -> bool:
    return token is not None and token.is_punct(value)


def _split_top_level(tokens: Sequence[Token]) -> list[tuple[Token, ...]]:
    """Splits group tokens on depth-0 commas, dropping empty elements."""
    elements: list[tuple[Token, ...]] = []
    current: list[Token] = []
    depth = 0
    for token in tokens:
        if token.is_punct("("):
            depth += 1
        elif token.is_punct(")"):
            depth -= 1
        elif token.is_punct(",") and depth == 0:
            if current:
                elements.append(tuple(current))
            current = []
            continue
        current.append(token)
    if current:
        elements.append(tuple(current))
    return elements


def _parse_name_list(cursor: _Cursor) -> tuple[str, ...]:
    inner = cursor.sub_cursor(cursor.read_group())
    names: list[str] = []
    while not inner.at_end():
        names.append(inner.read_identifier())
        if not inner.at_end():
            inner.expect_punct(",")
    if not names:
        raise cursor.error("empty column list")
    return tuple(names)


def _parse_tags(cursor: _Cursor) -> dict[str, str]:
    inner = cursor.sub_cursor(cursor.read_group())
    tags: dict[str, str] = {}
    while not inner.at_end():
        tag_name = inner.read_qualified_name().rsplit(".", 1)[-1].upper()
        inner.expect_punct("=")
        tags[tag_name] = inner.read_string()
        if not inner.at_end():
            inner.expect_punct(",")
    return tags


def _parse_constraint_flags(cursor: _Cursor) -> bool:
    """Consumes trailing constraint properties and returns the enforced flag."""
    enforced = True
    while not cursor.at_end():
        if cursor.accept_words("NOT", "ENFORCED"):
            enforced = False
        elif cursor.accept_words("ENFORCED"):
            enforced = True
        elif cursor.accept_words("NOT", "DEFERRABLE"):
            continue
        elif cursor.accept_words("MATCH"):
            cursor.next()
        elif cursor.accept_words("ON"):
            if not (cursor.accept_words("UPDATE") or cursor.accept_words("DELETE")):
                raise cursor.error("expected UPDATE or DELETE after ON")
            if not any(cursor.accept_words(*action.split()) for action in _REFERENTIAL_ACTIONS):
                raise cursor.error("expected referential action")
        elif cursor.peek_upper() in _CONSTRAINT_FLAG_WORDS:
            cursor.next()
        else:
            break
    return enforced


def _skip_identity_options(cursor: _Cursor) -> None:
    if cursor.at_punct("("):
        cursor.read_group()
    while True:
        if cursor.accept_words("START") or cursor.accept_words("INCREMENT"):
            if not cursor.accept_words("WITH"):
                cursor.accept_words("BY")
            cursor.next()
        elif not (cursor.accept_words("ORDER") or cursor.accept_words("NOORDER")):
            return


def _parse_data_type(cursor: _Cursor, column_name: str) -> DataType:
    token = cursor.peek()
    if token is None or token.kind != "word" or token.upper in _COLUMN_CLAUSE_WORDS:
        raise cursor.error(f"missing data type for column {column_name}")
    cursor.next()
    base = token.upper

    if base == "DOUBLE" and cursor.accept_words("PRECISION"):
        base = "DOUBLE PRECISION"
    elif base == "CHARACTER" and cursor.accept_words("VARYING"):
        base = "CHARACTER VARYING"

    params: tuple[str, ...] = ()
    if cursor.at_punct("("):
        inner = cursor.sub_cursor(cursor.read_group())
        values: list[str] = []
        while not inner.at_end():
            values.append(inner.next().upper)
            if not inner.at_end():
                inner.expect_punct(",")
        params = tuple(values)

    if base == "TIMESTAMP":
        if cursor.accept_words("WITH", "LOCAL", "TIME", "ZONE"):
            base = "TIMESTAMP_LTZ"
        elif cursor.accept_words("WITH", "TIME", "ZONE"):
            base = "TIMESTAMP_TZ"
        elif cursor.accept_words("WITHOUT", "TIME", "ZONE"):
            base = "TIMESTAMP_NTZ"

    return DataType(base=base, params=params)
