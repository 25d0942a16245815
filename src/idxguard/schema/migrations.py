"""Extract foreign-key-shaped columns from changed migration files."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from idxguard.exit_codes import MigrationReadError
from idxguard.schema.statements import (
    AddColumn,
    BeginTable,
    ChangeColumnType,
    Column,
    ColumnKind,
    ColumnType,
    EndTable,
    is_foreign_key_column,
    iter_statements,
)

log = logging.getLogger(__name__)

# Column kinds that count inside a create_table / change_table block
_BLOCK_FK_KINDS = frozenset({
    ColumnKind.BIGINT,
    ColumnKind.INTEGER,
    ColumnKind.UUID,
    ColumnKind.REFERENCE,
})


@dataclass(frozen=True)
class MigrationColumn:
    """A foreign-key-shaped column touched by a migration."""

    table: str
    column: str
    type: ColumnType
    source: str | None = None
    line_no: int | None = None


class MigrationColumns:
    """``(table, column) -> MigrationColumn`` with last-write-wins updates.

    Feed files in the order the caller wants them applied; a later
    declaration of the same column replaces the earlier one, so a column
    created as ``string`` and later changed to ``bigint`` ends up as
    ``bigint``.
    """

    def __init__(self):
        self._columns: dict[tuple[str, str], MigrationColumn] = {}

    def record(
        self,
        table: str,
        column: str,
        column_type: ColumnType,
        source: str | None = None,
        line_no: int | None = None,
    ) -> None:
        self._columns[(table, column)] = MigrationColumn(table, column, column_type, source, line_no)

    def __len__(self) -> int:
        return len(self._columns)

    def __iter__(self):
        """Iterate in ``(table, column)`` order so reports are stable."""
        for key in sorted(self._columns):
            yield self._columns[key]


def parse_migration_lines(
    lines: Iterable[str],
    columns: MigrationColumns | None = None,
    source: str | None = None,
) -> MigrationColumns:
    """Scan one migration's lines and record every foreign-key candidate.

    Inside a table block only integer-like and association columns count.
    ``add_column`` / ``change_column`` / ``add_reference`` count anywhere,
    keyed by their explicit table argument.
    """
    if columns is None:
        columns = MigrationColumns()

    current_table: str | None = None
    in_table = False

    for line_no, stmt in iter_statements(lines):
        if isinstance(stmt, BeginTable):
            current_table = stmt.name
            in_table = True
            log.debug("Found create_table for %s", current_table)
        elif isinstance(stmt, EndTable):
            if in_table:
                in_table = False
                current_table = None
        elif isinstance(stmt, Column):
            if not in_table or stmt.type.kind not in _BLOCK_FK_KINDS:
                continue
            name = stmt.column_name
            if is_foreign_key_column(name):
                log.debug(
                    "Found column in create_table - table: %s, column: %s, type: %s",
                    current_table, name, stmt.type,
                )
                columns.record(current_table, name, stmt.type, source, line_no)
        elif isinstance(stmt, (AddColumn, ChangeColumnType)):
            if is_foreign_key_column(stmt.name):
                log.debug(
                    "Found column change - table: %s, column: %s, type: %s (line %d)",
                    stmt.table, stmt.name, stmt.type, line_no,
                )
                columns.record(stmt.table, stmt.name, stmt.type, source, line_no)

    return columns


def parse_migration(
    path: str | Path,
    columns: MigrationColumns | None = None,
    source: str | None = None,
) -> MigrationColumns:
    """Read one migration file; an unreadable file aborts the run.

    *source* is the path shown in reports (default: *path*).
    """
    log.debug("Parsing migration file: %s", path)
    try:
        with open(path, encoding="utf-8", errors="replace") as fh:
            lines = fh.readlines()
    except OSError as exc:
        raise MigrationReadError(str(path), exc) from exc
    return parse_migration_lines(lines, columns, source=source or str(path))


def collect_migration_columns(
    paths: Iterable[str | Path],
    base_dir: str | Path | None = None,
) -> MigrationColumns:
    """Parse *paths* in the given order into one shared column map.

    Relative paths resolve against *base_dir* when given; reports keep
    each path as passed in.
    """
    columns = MigrationColumns()
    for path in paths:
        full_path = Path(base_dir) / path if base_dir is not None else path
        parse_migration(full_path, columns, source=str(path))
    return columns
