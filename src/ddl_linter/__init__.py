"""DDL Linter: static checks for data-warehouse DDL standards."""

__version__ = "0.1.0"
