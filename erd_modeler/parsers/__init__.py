"""SQL parsers producing data models."""

from erd_modeler.parsers.sql import SQLParser, parse_sql

__all__ = ["SQLParser", "parse_sql"]
