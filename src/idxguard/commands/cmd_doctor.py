"""Setup diagnostics command: Python version, git, and schema.rb presence.

Exit codes:
  0  All checks passed.
  1  One or more checks failed.
"""

from __future__ import annotations

import shutil
import subprocess
import sys
from pathlib import Path

import click

from idxguard.config import Settings
from idxguard.exit_codes import EXIT_ERROR, MIN_PYTHON
from idxguard.output.formatter import json_envelope, to_json

# ---------------------------------------------------------------------------
# Individual check functions
# ---------------------------------------------------------------------------


def _check_python_version(version_info=None) -> dict:
    vi = version_info or sys.version_info
    version_str = f"{vi[0]}.{vi[1]}.{vi[2]}"
    required = ".".join(str(p) for p in MIN_PYTHON)
    return {
        "name": "Python version",
        "passed": tuple(vi[:2]) >= MIN_PYTHON,
        "detail": f"Python {version_str} (>= {required} required)",
    }


def _check_git() -> dict:
    """git on PATH; needed for changed-file discovery and the skip gate."""
    git_path = shutil.which("git")
    if git_path is None:
        return {
            "name": "git executable",
            "passed": False,
            "detail": "git not found on PATH",
        }
    try:
        result = subprocess.run(
            ["git", "--version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        version_line = result.stdout.strip() if result.returncode == 0 else ""
        # "git version 2.43.0" -> "2.43.0"
        version = version_line.replace("git version", "").strip() or "unknown"
    except (OSError, subprocess.TimeoutExpired):
        version = "unknown"
    return {
        "name": "git executable",
        "passed": True,
        "detail": f"git {version}",
    }


def _check_schema_file(schema_file: str) -> dict:
    exists = Path(schema_file).is_file()
    return {
        "name": "schema.rb",
        "passed": exists,
        "detail": schema_file if exists else f"not found: {schema_file} (set SCHEMA_FILE or --schema)",
    }


# ---------------------------------------------------------------------------
# CLI command
# ---------------------------------------------------------------------------


@click.command("doctor")
@click.option("--schema", "schema_file", default=None, help="Path to schema.rb (env: SCHEMA_FILE)")
@click.pass_context
def doctor(ctx, schema_file):
    """Diagnose environment setup: Python, git, and the schema file.

    \b
    Exit codes:
      0  All checks passed.
      1  One or more checks failed.

    \b
    Examples:
      idxguard doctor
      idxguard --json doctor
    """
    json_mode = ctx.obj.get("json") if ctx.obj else False
    settings: Settings = (ctx.obj or {}).get("settings") or Settings.from_env()
    settings = settings.override(schema_file=schema_file)

    checks = [
        _check_python_version(),
        _check_git(),
        _check_schema_file(settings.schema_file),
    ]

    total = len(checks)
    failed = [c for c in checks if not c["passed"]]

    if not failed:
        verdict = f"all {total} checks passed"
    elif len(failed) == 1:
        verdict = f"1 check failed ({failed[0]['name']})"
    else:
        verdict = f"{len(failed)} checks failed"

    if json_mode:
        click.echo(to_json(json_envelope(
            "doctor",
            summary={
                "verdict": verdict,
                "total": total,
                "passed": total - len(failed),
                "failed": len(failed),
                "all_passed": not failed,
            },
            checks=checks,
        )))
    else:
        click.echo(f"VERDICT: {verdict}\n")
        for c in checks:
            label = "PASS" if c["passed"] else "FAIL"
            click.echo(f"  [{label}] {c['detail']}")
        if failed:
            click.echo()
            click.echo(f"  {len(failed)} check{'s' if len(failed) != 1 else ''} failed.")

    if failed:
        ctx.exit(EXIT_ERROR)
