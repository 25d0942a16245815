"""Schema snapshot and migration parsing, and index coverage decisions."""

from idxguard.schema.coverage import CoverageResult, check_column, covered, pair_covered
from idxguard.schema.migrations import (
    MigrationColumn,
    MigrationColumns,
    collect_migration_columns,
    parse_migration,
    parse_migration_lines,
)
from idxguard.schema.snapshot import IndexDeclaration, SchemaIndex, parse_schema, parse_schema_lines
from idxguard.schema.statements import ColumnKind, ColumnType, classify_line

__all__ = [
    "ColumnKind",
    "ColumnType",
    "CoverageResult",
    "IndexDeclaration",
    "MigrationColumn",
    "MigrationColumns",
    "SchemaIndex",
    "check_column",
    "classify_line",
    "collect_migration_columns",
    "covered",
    "pair_covered",
    "parse_migration",
    "parse_migration_lines",
    "parse_schema",
    "parse_schema_lines",
]
