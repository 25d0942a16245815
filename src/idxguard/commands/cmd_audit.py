"""Audit every foreign-key column in schema.rb, not just changed ones."""

from __future__ import annotations

import click

from idxguard.config import Settings
from idxguard.exit_codes import EXIT_VIOLATIONS
from idxguard.output.formatter import json_envelope, to_json
from idxguard.output.report import audit_schema, render_audit
from idxguard.schema.snapshot import parse_schema


@click.command("audit")
@click.option("--schema", "schema_file", default=None, help="Path to schema.rb (env: SCHEMA_FILE)")
@click.option("--table", "table_filter", default=None, help="Limit the report to one table")
@click.pass_context
def audit(ctx, schema_file, table_filter):
    """Report index coverage for every foreign key column in schema.rb.

    \b
    Exit codes:
      0  Every foreign key column has an index.
      1  Some columns are missing indexes, or schema.rb is missing.

    \b
    Examples:
      idxguard audit
      idxguard audit --table comments
      idxguard --json audit --schema db/schema.rb
    """
    json_mode = ctx.obj.get("json") if ctx.obj else False
    settings: Settings = (ctx.obj or {}).get("settings") or Settings.from_env()
    settings = settings.override(schema_file=schema_file)

    # A missing or unreadable schema.rb fails before anything reaches stdout
    schema = parse_schema(settings.schema_file)
    if not json_mode:
        click.echo("Analyzing schema.rb for missing indexes...")
        click.echo()

    report = audit_schema(schema)
    if table_filter:
        report.results = [r for r in report.results if r.table == table_filter]
        report.missing = [v for v in report.missing if v.table == table_filter]

    if json_mode:
        click.echo(to_json(json_envelope(
            "audit",
            summary={
                "verdict": report.verdict,
                "total": report.total,
                "covered": report.covered_count,
                "missing": report.missing_count,
                "indexes_found": schema.index_count,
                "tables_with_indexes": schema.table_count,
                "table_filter": table_filter,
            },
            missing=[v.to_dict() for v in report.missing],
        )))
    else:
        for line in render_audit(report):
            click.echo(line)

    if report.missing:
        ctx.exit(EXIT_VIOLATIONS)
