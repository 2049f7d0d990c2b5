"""DDL statement parser."""

from .render import render_all, render_ddl
from .service import parse_ddl, parse_file, parse_files

__all__ = ["parse_ddl", "parse_file", "parse_files", "render_all", "render_ddl"]
