"""Common models and exceptions."""

from .exceptions import ConfigurationError, ParseError, RuleEvaluationError, UserInputError
from .models import (
    CheckOutcome,
    Column,
    DataType,
    Finding,
    ForeignKeyRef,
    ObjectKind,
    ObjectSection,
    ParseIssue,
    ParseResult,
    Report,
    SchemaObject,
    Severity,
    parse_data_type,
    short_identifier,
)

__all__ = [
    "CheckOutcome",
    "Column",
    "ConfigurationError",
    "DataType",
    "Finding",
    "ForeignKeyRef",
    "ObjectKind",
    "ObjectSection",
    "ParseError",
    "ParseIssue",
    "ParseResult",
    "Report",
    "RuleEvaluationError",
    "SchemaObject",
    "Severity",
    "UserInputError",
    "parse_data_type",
    "short_identifier",
]
