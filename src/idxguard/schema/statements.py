"""Line classifier for Rails schema snapshots and migrations.

Each stripped source line is turned into at most one typed statement:

    BeginTable(name)                    create_table / change_table
    Column(name, type, polymorphic)     t.<type> "name"
    Index(table, columns)               t.index [...] / add_index "t", [...]
    MalformedIndex(line)                an index we could not take apart
    EndTable()                          end
    AddColumn(table, name, type)        add_column / add_reference
    ChangeColumnType(table, name, type) change_column

Lines that match nothing classify as ``None``.  This is not a Ruby
parser: it knows one statement per line and nothing about nesting beyond
the table block.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Union

FK_SUFFIX = "_id"
TYPE_SUFFIX = "_type"

# ---------------------------------------------------------------------------
# Column types
# ---------------------------------------------------------------------------


class ColumnKind(enum.Enum):
    BIGINT = "bigint"
    INTEGER = "integer"
    UUID = "uuid"
    REFERENCE = "reference"
    STRING = "string"
    OTHER = "other"


_KIND_BY_TOKEN = {
    "bigint": ColumnKind.BIGINT,
    "integer": ColumnKind.INTEGER,
    "uuid": ColumnKind.UUID,
    "references": ColumnKind.REFERENCE,
    "belongs_to": ColumnKind.REFERENCE,
    "string": ColumnKind.STRING,
}


@dataclass(frozen=True)
class ColumnType:
    """A declared column type: the closed kind plus the token as written."""

    kind: ColumnKind
    token: str

    @classmethod
    def parse(cls, token: str) -> ColumnType:
        token = token.strip().lstrip(":").strip("\"'")
        return cls(_KIND_BY_TOKEN.get(token, ColumnKind.OTHER), token)

    @property
    def is_reference(self) -> bool:
        return self.kind is ColumnKind.REFERENCE

    def __str__(self) -> str:
        return self.token


def is_foreign_key_column(column: str) -> bool:
    return column.endswith(FK_SUFFIX)


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BeginTable:
    name: str


@dataclass(frozen=True)
class EndTable:
    pass


@dataclass(frozen=True)
class Column:
    name: str
    type: ColumnType
    polymorphic: bool = False

    @property
    def column_name(self) -> str:
        """Effective column name; association shorthands gain ``_id``."""
        if self.type.is_reference:
            return self.name + FK_SUFFIX
        return self.name


@dataclass(frozen=True)
class Index:
    """An index declaration; ``table`` is None when declared inline."""

    table: str | None
    columns: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MalformedIndex:
    line: str


@dataclass(frozen=True)
class AddColumn:
    table: str
    name: str
    type: ColumnType


@dataclass(frozen=True)
class ChangeColumnType:
    table: str
    name: str
    type: ColumnType


Statement = Union[
    BeginTable, EndTable, Column, Index, MalformedIndex, AddColumn, ChangeColumnType
]

# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

# A symbol (:users) or a string literal ("users" / 'users')
_NAME = r"""(?::(\w+)|["']([\w.]+)["'])"""

_RE_BEGIN_TABLE = re.compile(
    rf"^(?:create_table|change_table)\b\s*\(?\s*{_NAME}",
)

_RE_END = re.compile(r"^end\s*(?:#.*)?$")

# t.index ...
_RE_INLINE_INDEX = re.compile(r"^t\.index\b\s*\(?\s*(.*)$")

# add_index :table, ...
_RE_ADD_INDEX = re.compile(rf"^add_index\b\s*\(?\s*(?:{_NAME})?\s*,?\s*(.*)$")

# t.column :name, :type
_RE_GENERIC_COLUMN = re.compile(
    rf"^t\.column\s*\(?\s*{_NAME}\s*,\s*{_NAME}",
)

# t.bigint "name", ...
_RE_COLUMN = re.compile(rf"^t\.(\w+)\s*\(?\s*{_NAME}(.*)$")

# add_column :table, :name, :type  /  change_column :table, :name, :type
_RE_ADD_COLUMN = re.compile(
    rf"^add_column\s*\(?\s*{_NAME}\s*,\s*{_NAME}\s*,\s*{_NAME}",
)
_RE_CHANGE_COLUMN = re.compile(
    rf"^change_column(?:\s+|\s*\()\s*{_NAME}\s*,\s*{_NAME}\s*,\s*{_NAME}",
)

# add_reference :table, :name  /  add_belongs_to :table, :name
_RE_ADD_REFERENCE = re.compile(
    rf"^add_(references?|belongs_to)\s*\(?\s*{_NAME}\s*,\s*{_NAME}",
)

_RE_POLYMORPHIC = re.compile(r"\bpolymorphic:\s*true\b|:polymorphic\s*=>\s*true")

_RE_NAME_TOKEN = re.compile(r"""(?::(\w+)|["'](\w+)["'])""")

# t.<method> calls that never declare a column
_NON_COLUMN_METHODS = frozenset({
    "column",
    "index",
    "timestamps",
    "check_constraint",
    "exclusion_constraint",
    "unique_constraint",
    "foreign_key",
    "remove",
    "remove_references",
    "remove_belongs_to",
    "remove_index",
    "remove_timestamps",
    "rename",
    "rename_index",
    "change",
    "change_default",
    "change_null",
})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _name(match: re.Match, group: int) -> str:
    """Return whichever alternative of the ``_NAME`` pair at *group* matched."""
    return match.group(group) or match.group(group + 1)


def _extract_index_columns(fragment: str) -> tuple[str, ...]:
    """Pull column names out of the argument text of an index statement.

    ``["a", "b"], name: ...`` yields both names; a bare ``"a"`` or ``:a``
    yields just the first name.  Keyword options after the column list
    (``name: "index_x"``) are never mistaken for columns.
    """
    fragment = fragment.strip()
    if fragment.startswith("["):
        close = fragment.find("]")
        if close == -1:
            return ()
        inner = fragment[1:close]
        return tuple(a or b for a, b in _RE_NAME_TOKEN.findall(inner))
    m = _RE_NAME_TOKEN.match(fragment)
    if not m:
        return ()
    return (m.group(1) or m.group(2),)


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def classify_line(raw: str) -> Statement | None:
    """Classify one source line, or return None when it declares nothing."""
    line = raw.strip()
    if not line or line.startswith("#"):
        return None

    m = _RE_BEGIN_TABLE.match(line)
    if m:
        return BeginTable(_name(m, 1))

    if _RE_END.match(line):
        return EndTable()

    m = _RE_INLINE_INDEX.match(line)
    if m:
        columns = _extract_index_columns(m.group(1))
        if not columns:
            return MalformedIndex(line)
        return Index(None, columns)

    if line.startswith("add_index"):
        m = _RE_ADD_INDEX.match(line)
        table = _name(m, 1) if m else None
        columns = _extract_index_columns(m.group(3)) if m else ()
        if not table or not columns:
            return MalformedIndex(line)
        return Index(table, columns)

    m = _RE_GENERIC_COLUMN.match(line)
    if m:
        return Column(_name(m, 1), ColumnType.parse(_name(m, 3)))

    m = _RE_COLUMN.match(line)
    if m and m.group(1) not in _NON_COLUMN_METHODS:
        column_type = ColumnType.parse(m.group(1))
        polymorphic = column_type.is_reference and bool(_RE_POLYMORPHIC.search(m.group(4)))
        return Column(_name(m, 2), column_type, polymorphic)

    m = _RE_ADD_COLUMN.match(line)
    if m:
        return AddColumn(_name(m, 1), _name(m, 3), ColumnType.parse(_name(m, 5)))

    m = _RE_CHANGE_COLUMN.match(line)
    if m:
        return ChangeColumnType(_name(m, 1), _name(m, 3), ColumnType.parse(_name(m, 5)))

    m = _RE_ADD_REFERENCE.match(line)
    if m:
        token = "belongs_to" if m.group(1) == "belongs_to" else "references"
        return AddColumn(_name(m, 2), _name(m, 4) + FK_SUFFIX, ColumnType.parse(token))

    return None


def iter_statements(lines: Iterable[str]) -> Iterator[tuple[int, Statement]]:
    """Yield ``(line_no, statement)`` for every line that declares something."""
    for line_no, raw in enumerate(lines, start=1):
        stmt = classify_line(raw)
        if stmt is not None:
            yield line_no, stmt
