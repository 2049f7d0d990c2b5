"""Regex tokenizer and statement splitter for DDL text."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterator, Literal

TokenKind = Literal["word", "quoted", "string", "number", "punct", "other"]

_TOKEN_PATTERN = re.compile(
    r"""
      (?P<ws>\s+)
    | (?P<line_comment>--[^\n]*|//[^\n]*)
    | (?P<block_comment>/\*.*?(?:\*/|\Z))
    | (?P<dollar>\$\$.*?\$\$)
    | (?P<string>'(?:[^'\\]|''|\\.)*')
    | (?P<quoted>"(?:[^"]|"")*")
    | (?P<number>\d+(?:\.\d+)?)
    | (?P<word>[A-Za-z_][A-Za-z0-9_$#]*)
    | (?P<punct>[(),;=.])
    | (?P<other>\S)
    """,
    re.VERBOSE | re.DOTALL,
)

_SKIPPED_GROUPS = {"ws", "line_comment", "block_comment"}


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    offset: int
    end: int

    @property
    def upper(self) -> str:
        return self.value.upper() if self.kind == "word" else self.value

    def is_word(self, *words: str) -> bool:
        return self.kind == "word" and self.value.upper() in words

    def is_punct(self, value: str) -> bool:
        return self.kind == "punct" and self.value == value


@dataclass(frozen=True)
class Statement:
    index: int
    tokens: tuple[Token, ...]
    terminated: bool = True

    @property
    def offset(self) -> int:
        return self.tokens[0].offset if self.tokens else 0


def tokenize(text: str) -> Iterator[Token]:
    for matched in _TOKEN_PATTERN.finditer(text):
        group = matched.lastgroup
        if group is None or group in _SKIPPED_GROUPS:
            continue
        kind: TokenKind = "string" if group == "dollar" else group  # type: ignore[assignment]
        yield Token(kind=kind, value=matched.group(), offset=matched.start(), end=matched.end())


def split_statements(text: str) -> list[Statement]:
    """Splits DDL text on `;`. Statement indexes start at 1.

    A top-level CREATE inside an open statement also starts a new one; the
    statement before it is marked as not terminated.
    """
    statements: list[Statement] = []
    current: list[Token] = []
    depth = 0
    for token in tokenize(text):
        if token.is_punct(";"):
            if current:
                statements.append(Statement(index=len(statements) + 1, tokens=tuple(current)))
            current = []
            depth = 0
            continue
        if token.is_word("CREATE") and depth == 0 and current:
            statements.append(
                Statement(index=len(statements) + 1, tokens=tuple(current), terminated=False)
            )
            current = []
        if token.is_punct("("):
            depth += 1
        elif token.is_punct(")"):
            depth = max(depth - 1, 0)
        current.append(token)
    if current:
        statements.append(Statement(index=len(statements) + 1, tokens=tuple(current)))
    return statements


def unquote_identifier(token: Token) -> str:
    if token.kind == "quoted":
        return token.value[1:-1].replace('""', '"')
    return token.value


def unquote_string(token: Token) -> str:
    raw = token.value
    if raw.startswith("$$"):
        return raw[2:-2]
    body = raw[1:-1]
    return re.sub(r"''|\\(.)", lambda m: m.group(1) if m.group(1) is not None else "'", body)
