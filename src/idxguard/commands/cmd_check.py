"""Fail CI when a changed migration adds a foreign key without an index.

Flow, each step a possible early exit:

    skip gate          -> success, with the reason
    no changed files   -> success
    schema.rb missing  -> fatal error
    parse migrations, parse schema.rb, check coverage
                       -> failure if anything is uncovered, else success
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import click

from idxguard import vcs
from idxguard.config import Settings
from idxguard.exit_codes import EXIT_SUCCESS, EXIT_VIOLATIONS, SnapshotMissingError
from idxguard.output.formatter import json_envelope, to_json
from idxguard.output.report import FOOTER, Violation, find_violations, render_violation
from idxguard.schema.migrations import collect_migration_columns
from idxguard.schema.snapshot import parse_schema
from idxguard.skip_gate import should_skip

log = logging.getLogger(__name__)


@dataclass
class CheckOutcome:
    skip_reason: str | None = None
    changed_files: list[str] = field(default_factory=list)
    columns_checked: int = 0
    violations: list[Violation] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None

    @property
    def exit_code(self) -> int:
        return EXIT_VIOLATIONS if self.violations else EXIT_SUCCESS


def run_check(
    settings: Settings,
    root: Path,
    changed_files: list[str] | None = None,
    base_dir: Path | None = None,
) -> CheckOutcome:
    """Run the whole check; *changed_files* overrides git discovery.

    Changed-file paths resolve against *base_dir* (default: the repo
    *root*) and are reported as given.  The schema path resolves against
    the current directory.
    """
    reason = should_skip(settings, root)
    if reason:
        return CheckOutcome(skip_reason=reason)

    if changed_files is None:
        changed_files = vcs.get_changed_migrations(root, settings.base_ref)
    if not changed_files:
        log.debug("No migration files changed")
        return CheckOutcome()

    schema_path = Path(settings.schema_file)
    if not schema_path.is_file():
        raise SnapshotMissingError(settings.schema_file)

    columns = collect_migration_columns(changed_files, base_dir or root)

    schema = parse_schema(schema_path)
    log.debug("Schema columns that need indexes:")
    for table, column, _ in schema.columns():
        log.debug("  %s:%s (type: %s)", table, column, schema.effective_type(table, column))

    for col in columns:
        log.debug(
            "Checking index requirement from migration - table: %s, column: %s, type: %s",
            col.table, col.column, col.type,
        )

    return CheckOutcome(
        changed_files=list(changed_files),
        columns_checked=len(columns),
        violations=find_violations(columns, schema),
    )


def _summary(outcome: CheckOutcome) -> dict:
    if outcome.skipped:
        verdict = f"Skipped: {outcome.skip_reason}"
    elif not outcome.changed_files:
        verdict = "No migration files changed"
    elif outcome.violations:
        n = len(outcome.violations)
        verdict = f"{n} foreign key column{'s' if n != 1 else ''} missing an index"
    else:
        verdict = f"All {outcome.columns_checked} changed foreign key columns have indexes"
    return {
        "verdict": verdict,
        "skipped": outcome.skipped,
        "skip_reason": outcome.skip_reason,
        "migrations_scanned": len(outcome.changed_files),
        "columns_checked": outcome.columns_checked,
        "violations": len(outcome.violations),
        "passed": not outcome.violations,
    }


# ---------------------------------------------------------------------------
# CLI command
# ---------------------------------------------------------------------------


@click.command("check")
@click.argument("migrations", nargs=-1, type=click.Path(dir_okay=False))
@click.option("--schema", "schema_file", default=None, help="Path to schema.rb (env: SCHEMA_FILE)")
@click.option("--base-ref", default=None, help="Base branch for PR diffs (env: GITHUB_BASE_REF)")
@click.option("--skip", is_flag=True, default=False, help="Skip the check (env: SKIP_INDEX_CHECK=1)")
@click.pass_context
def check(ctx, migrations, schema_file, base_ref, skip):
    """Check changed migrations for foreign keys without an index.

    Without MIGRATIONS, changed files under db/migrate/ are taken from git:
    the diff against origin/BASE_REF when a base ref is set, the working
    tree otherwise.

    Add [skip-index-check] to a commit message to skip the check.

    Text output is identical across runs on identical inputs.  With --json
    only _meta.timestamp changes between runs.

    \b
    Exit codes:
      0  No missing indexes (or nothing to check, or skipped).
      1  Missing indexes found, or schema.rb is missing.

    \b
    Examples:
      idxguard check
      idxguard check db/migrate/20240101000000_add_company_to_users.rb
      idxguard --json check --base-ref main
    """
    json_mode = ctx.obj.get("json") if ctx.obj else False
    settings: Settings = (ctx.obj or {}).get("settings") or Settings.from_env()
    settings = settings.override(schema_file=schema_file, base_ref=base_ref, skip_override=skip or None)

    root = vcs.repo_root()
    if migrations:
        # Explicit paths are relative to the caller, not the repo root
        outcome = run_check(settings, root, list(migrations), base_dir=Path.cwd())
    else:
        outcome = run_check(settings, root)

    if json_mode:
        click.echo(to_json(json_envelope(
            "check",
            summary=_summary(outcome),
            changed_files=outcome.changed_files,
            violations=[v.to_dict() for v in outcome.violations],
        )))
    elif outcome.skipped:
        click.echo(f"Skipping index check: {outcome.skip_reason}")
    elif outcome.violations:
        for v in outcome.violations:
            for line in render_violation(v):
                click.echo(line)
        for line in FOOTER:
            click.echo(line)
    elif outcome.changed_files:
        click.echo(f"VERDICT: {_summary(outcome)['verdict']}")

    if outcome.exit_code != EXIT_SUCCESS:
        ctx.exit(outcome.exit_code)
