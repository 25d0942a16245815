"""Decide whether a foreign-key column is covered by a declared index.

A column is covered when it appears, in any position, in at least one
index declared on its table.  A composite index ``[a, b]`` therefore
covers ``b`` even though a query on ``b`` alone cannot use it; this is
a known, accepted relaxation.

Polymorphic ``<base>_id`` columns are judged as a pair: they are covered
only by a single index containing both ``<base>_type`` and ``<base>_id``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from idxguard.schema.snapshot import SchemaIndex
from idxguard.schema.statements import FK_SUFFIX, TYPE_SUFFIX

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoverageResult:
    table: str
    column: str
    covered: bool
    polymorphic_base: str | None = None

    @property
    def is_polymorphic(self) -> bool:
        return self.polymorphic_base is not None


def covered(schema: SchemaIndex, table: str, column: str) -> bool:
    """Exact-name membership of *column* in any index on *table*."""
    if schema.has_index_on(table, column):
        log.debug("Found existing index for %s:%s", table, column)
        return True
    log.debug("No existing index found for %s:%s", table, column)
    return False


def pair_covered(schema: SchemaIndex, table: str, base: str) -> bool:
    """True if one index on *table* holds both ``<base>_type`` and ``<base>_id``."""
    wanted = {base + TYPE_SUFFIX, base + FK_SUFFIX}
    for decl in schema.indexes_for(table):
        if wanted.issubset(decl.columns):
            log.debug("Found composite index for polymorphic %s:%s", table, base)
            return True
    log.debug("No composite index found for polymorphic %s:%s", table, base)
    return False


def check_column(schema: SchemaIndex, table: str, column: str) -> CoverageResult:
    base = schema.polymorphic_base(table, column)
    if base is not None:
        return CoverageResult(table, column, pair_covered(schema, table, base), base)
    return CoverageResult(table, column, covered(schema, table, column))
