"""Parse the consolidated schema snapshot (``db/schema.rb``).

One forward pass over the snapshot builds a :class:`SchemaIndex`:

- candidate foreign-key columns and their declared types,
- every index declaration, inline (``t.index``) or standalone
  (``add_index``), kept both as raw column groups and as a flat
  ``(table, column)`` membership set for O(1) lookups,
- polymorphic pairs: an ``<base>_id`` column whose table also declares
  ``<base>_type``.

Polymorphism is tracked as an overlay next to the declared types, so the
original type of a polymorphic ``_id`` column is never lost.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from idxguard.exit_codes import SnapshotMissingError
from idxguard.schema.statements import (
    FK_SUFFIX,
    TYPE_SUFFIX,
    BeginTable,
    Column,
    ColumnKind,
    ColumnType,
    EndTable,
    Index,
    MalformedIndex,
    is_foreign_key_column,
    iter_statements,
)

log = logging.getLogger(__name__)

# Declared kinds that make an ``_id`` column a foreign-key candidate
_FK_KINDS = frozenset({
    ColumnKind.BIGINT,
    ColumnKind.INTEGER,
    ColumnKind.UUID,
    ColumnKind.REFERENCE,
})


@dataclass(frozen=True)
class IndexDeclaration:
    table: str
    columns: tuple[str, ...]
    line_no: int | None = None


class SchemaIndex:
    """Read-only view of the snapshot once :func:`parse_schema_lines` is done."""

    def __init__(self):
        self._columns: dict[tuple[str, str], ColumnType] = {}
        self._indexed: set[tuple[str, str]] = set()
        self._indexes: dict[str, list[IndexDeclaration]] = defaultdict(list)
        self._polymorphic: set[tuple[str, str]] = set()

    # -- building ----------------------------------------------------------

    def _add_column(self, table: str, column: str, column_type: ColumnType) -> None:
        self._columns[(table, column)] = column_type

    def _add_index(self, decl: IndexDeclaration) -> None:
        self._indexes[decl.table].append(decl)
        for column in decl.columns:
            self._indexed.add((decl.table, column))

    def _mark_polymorphic(self, table: str, base: str) -> None:
        self._polymorphic.add((table, base + FK_SUFFIX))
        self._polymorphic.add((table, base + TYPE_SUFFIX))

    # -- queries -----------------------------------------------------------

    def column_type(self, table: str, column: str) -> ColumnType | None:
        """Declared type of a candidate column, or None if it is not one."""
        return self._columns.get((table, column))

    def has_index_on(self, table: str, column: str) -> bool:
        return (table, column) in self._indexed

    def indexes_for(self, table: str) -> list[IndexDeclaration]:
        return list(self._indexes.get(table, ()))

    def is_polymorphic(self, table: str, column: str) -> bool:
        return (table, column) in self._polymorphic

    def polymorphic_base(self, table: str, column: str) -> str | None:
        """``commentable`` for ``commentable_id`` when it is half of a pair."""
        if is_foreign_key_column(column) and self.is_polymorphic(table, column):
            return column[: -len(FK_SUFFIX)]
        return None

    def effective_type(self, table: str, column: str) -> str | None:
        """Type text for reports: ``polymorphic`` overrides the declared type."""
        if self.is_polymorphic(table, column):
            return "polymorphic"
        declared = self.column_type(table, column)
        return str(declared) if declared is not None else None

    def columns(self) -> list[tuple[str, str, ColumnType]]:
        """All candidate columns as ``(table, column, type)``, sorted."""
        return [(t, c, self._columns[(t, c)]) for t, c in sorted(self._columns)]

    @property
    def index_count(self) -> int:
        return sum(len(v) for v in self._indexes.values())

    @property
    def table_count(self) -> int:
        return len(self._indexes)

    def __len__(self) -> int:
        return len(self._columns)


def _close_table(schema: SchemaIndex, table: str, table_columns: dict[str, ColumnType]) -> None:
    """Detect ``<base>_id`` + ``<base>_type`` pairs among a table's columns."""
    for column in table_columns:
        if not is_foreign_key_column(column):
            continue
        base = column[: -len(FK_SUFFIX)]
        if base + TYPE_SUFFIX in table_columns:
            log.debug(
                "Found polymorphic association - table: %s, columns: %s, %s",
                table, column, base + TYPE_SUFFIX,
            )
            schema._mark_polymorphic(table, base)


def parse_schema_lines(lines: Iterable[str]) -> SchemaIndex:
    schema = SchemaIndex()
    current_table: str | None = None
    in_table = False
    table_columns: dict[str, ColumnType] = {}

    for line_no, stmt in iter_statements(lines):
        if isinstance(stmt, BeginTable):
            current_table = stmt.name
            in_table = True
            table_columns = {}
            log.debug("Processing schema table: %s", current_table)
        elif isinstance(stmt, EndTable):
            if in_table:
                _close_table(schema, current_table, table_columns)
            in_table = False
            current_table = None
        elif isinstance(stmt, Index):
            table = stmt.table or (current_table if in_table else None)
            if table is None:
                log.debug("Failed to parse index from line %d: no table", line_no)
                continue
            schema._add_index(IndexDeclaration(table, stmt.columns, line_no))
            log.debug("Recorded existing index - table: %s, columns: %s", table, " ".join(stmt.columns))
        elif isinstance(stmt, MalformedIndex):
            log.debug("Failed to parse index from line: %s", stmt.line)
        elif isinstance(stmt, Column) and in_table:
            name = stmt.column_name
            table_columns[name] = stmt.type
            if stmt.polymorphic:
                table_columns[stmt.name + TYPE_SUFFIX] = ColumnType.parse("string")
            if stmt.type.kind in _FK_KINDS and is_foreign_key_column(name):
                log.debug(
                    "Found potential foreign key in schema - table: %s, column: %s, type: %s",
                    current_table, name, stmt.type,
                )
                schema._add_column(current_table, name, stmt.type)

    return schema


def parse_schema(path: str | Path) -> SchemaIndex:
    """Parse the snapshot at *path*; a missing or unreadable file is fatal."""
    path = Path(path)
    if not path.is_file():
        raise SnapshotMissingError(str(path))
    log.debug("Reading %s...", path)
    try:
        with open(path, encoding="utf-8", errors="replace") as fh:
            lines = fh.readlines()
    except OSError as exc:
        raise SnapshotMissingError(str(path), exc) from exc
    return parse_schema_lines(lines)
