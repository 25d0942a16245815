"""Turn coverage decisions into diagnostics.

Check mode reports uncovered columns touched by changed migrations; audit
mode reports every candidate column in the snapshot and adds a summary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from idxguard.output.formatter import github_annotation
from idxguard.schema.coverage import CoverageResult, check_column
from idxguard.schema.migrations import MigrationColumn
from idxguard.schema.snapshot import SchemaIndex
from idxguard.schema.statements import FK_SUFFIX, TYPE_SUFFIX, ColumnKind, ColumnType

TYPE_DESCRIPTIONS = {
    ColumnKind.BIGINT: "64-bit integer typically used for foreign keys",
    ColumnKind.INTEGER: "32-bit integer commonly used for foreign keys",
    ColumnKind.REFERENCE: "ORM-level reference/association declaration",
    ColumnKind.UUID: "Universally Unique Identifier",
}

FOOTER = (
    "Found foreign key columns in schema.rb that need indexes",
    "Foreign keys should have indexes to improve JOIN performance",
    "Run with DEBUG=1 to see more details about the detected columns",
)


def describe_type(column_type: ColumnType | str) -> str:
    if isinstance(column_type, str):
        column_type = ColumnType.parse(column_type)
    return TYPE_DESCRIPTIONS.get(column_type.kind, column_type.token)


def suggest_index(table: str, column: str, polymorphic_base: str | None = None) -> str:
    """The ``add_index`` statement that would fix the finding."""
    if polymorphic_base:
        return f"add_index :{table}, [:{polymorphic_base}{TYPE_SUFFIX}, :{polymorphic_base}{FK_SUFFIX}]"
    return f"add_index :{table}, :{column}"


@dataclass(frozen=True)
class Violation:
    table: str
    column: str
    declared_type: str
    polymorphic_base: str | None = None
    source: str | None = None
    line_no: int | None = None

    @property
    def is_polymorphic(self) -> bool:
        return self.polymorphic_base is not None

    @property
    def effective_type(self) -> str:
        return "polymorphic" if self.is_polymorphic else self.declared_type

    @property
    def description(self) -> str:
        return describe_type(self.declared_type)

    @property
    def suggestion(self) -> str:
        return suggest_index(self.table, self.column, self.polymorphic_base)

    @property
    def columns(self) -> list[str]:
        if self.is_polymorphic:
            return [self.polymorphic_base + TYPE_SUFFIX, self.polymorphic_base + FK_SUFFIX]
        return [self.column]

    def to_dict(self) -> dict:
        return {
            "table": self.table,
            "column": self.column,
            "type": self.effective_type,
            "declared_type": self.declared_type,
            "type_description": self.description,
            "polymorphic": self.is_polymorphic,
            "association": self.polymorphic_base,
            "columns": self.columns,
            "suggestion": self.suggestion,
            "source": self.source,
            "line": self.line_no,
        }


def find_violations(columns: Iterable[MigrationColumn], schema: SchemaIndex) -> list[Violation]:
    """One violation per changed column that no snapshot index covers."""
    violations: list[Violation] = []
    for col in columns:
        result = check_column(schema, col.table, col.column)
        if result.covered:
            continue
        violations.append(Violation(
            table=col.table,
            column=col.column,
            declared_type=str(col.type),
            polymorphic_base=result.polymorphic_base,
            source=col.source,
            line_no=col.line_no,
        ))
    violations.sort(key=lambda v: (v.table, v.column))
    return violations


def render_violation(v: Violation) -> list[str]:
    if v.is_polymorphic:
        base = v.polymorphic_base
        headline = f"Missing index for polymorphic association '{base}' in table '{v.table}'"
        details = [
            "- Association type: Polymorphic",
            f"- Columns: {base}{TYPE_SUFFIX}, {base}{FK_SUFFIX}",
            "- Please add a composite index to improve query performance",
        ]
    else:
        headline = f"Missing index for foreign key column '{v.column}' in table '{v.table}'"
        details = [
            f"- Column type: {v.declared_type} ({v.description})",
            "- Column appears to be a foreign key (ends with _id)",
            "- Please add an index to improve query performance",
        ]
    return [
        github_annotation("error", headline, v.source, v.line_no),
        "Details:",
        *details,
        f"- You can add it using: {v.suggestion}",
    ]


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


@dataclass
class AuditReport:
    results: list[CoverageResult] = field(default_factory=list)
    missing: list[Violation] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def covered_count(self) -> int:
        return sum(1 for r in self.results if r.covered)

    @property
    def missing_count(self) -> int:
        return self.total - self.covered_count

    @property
    def verdict(self) -> str:
        if not self.missing:
            return f"All {self.total} foreign key columns have indexes"
        noun = "column" if self.total == 1 else "columns"
        if self.missing_count == 1:
            return f"1 of {self.total} foreign key {noun} is missing an index"
        return f"{self.missing_count} of {self.total} foreign key {noun} are missing indexes"


def audit_schema(schema: SchemaIndex) -> AuditReport:
    """Check every candidate column declared in the snapshot."""
    report = AuditReport()
    for table, column, column_type in schema.columns():
        result = check_column(schema, table, column)
        report.results.append(result)
        if not result.covered:
            report.missing.append(Violation(
                table=table,
                column=column,
                declared_type=str(column_type),
                polymorphic_base=result.polymorphic_base,
            ))
    return report


def render_audit(report: AuditReport) -> list[str]:
    lines = [
        f"VERDICT: {report.verdict}",
        "",
        "Schema Analysis Report",
        "=====================",
        "",
        "Missing Indexes:",
        "---------------",
    ]
    for v in report.missing:
        lines.append(f"✗ Table '{v.table}' has no index on '{v.column}' (type: {v.effective_type})")
        lines.append(f"  - Add with: {v.suggestion}")
    if not report.missing:
        lines.append("(none)")
    lines += [
        "",
        "Summary:",
        "--------",
        f"Total columns checked: {report.total}",
        f"Columns with indexes: {report.covered_count}",
        f"Columns missing indexes: {report.missing_count}",
        "",
    ]
    if report.missing:
        lines.append("Some foreign key columns are missing indexes.")
        lines.append("Consider adding indexes to improve query performance.")
    else:
        lines.append("All foreign key columns have indexes. Good job!")
    return lines
