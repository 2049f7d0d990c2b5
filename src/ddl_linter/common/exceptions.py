"""Custom exceptions for command exit mapping."""

from __future__ import annotations


class UserInputError(Exception):
    """Raised when user input or environment is invalid."""


class ConfigurationError(UserInputError):
    """Raised when rule configuration is invalid. Aborts the run before parsing."""


class ParseError(Exception):
    """Raised when a DDL statement or element cannot be parsed."""

    def __init__(self, message: str, statement_index: int = 0, offset: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.statement_index = statement_index
        self.offset = offset

    def __str__(self) -> str:
        return f"statement {self.statement_index} at offset {self.offset}: {self.message}"


class RuleEvaluationError(Exception):
    """Raised when a rule cannot evaluate an object."""

    def __init__(self, rule_id: str, object_name: str, cause: BaseException) -> None:
        super().__init__(f"rule {rule_id} failed to evaluate: {cause}")
        self.rule_id = rule_id
        self.object_name = object_name
        self.cause = cause
