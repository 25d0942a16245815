"""Shared test fixtures and helpers for idxguard tests.

Provides:
- Git helpers: git_init(), git_commit()
- CliRunner fixtures: cli_runner, invoke_cli()
- Rails project fixtures: rails_project (factory) -> rails_repo (git)
- Snapshot builder: schema_rb()
- JSON validation helpers: parse_json_output(), assert_json_envelope()
"""

from __future__ import annotations

import json
import os
import subprocess

import pytest
from click.testing import CliRunner

# Environment variables the CLI reads; cleared so a CI job's settings
# never leak into a test.
_IDXGUARD_ENV = ("DEBUG", "SCHEMA_FILE", "SKIP_INDEX_CHECK", "GITHUB_BASE_REF")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _IDXGUARD_ENV:
        monkeypatch.delenv(name, raising=False)


# ===========================================================================
# Git helpers
# ===========================================================================


def git_init(path):
    """Initialize a git repo, add all files, and commit."""
    subprocess.run(["git", "init"], cwd=path, capture_output=True)
    subprocess.run(["git", "config", "user.email", "t@t.com"], cwd=path, capture_output=True)
    subprocess.run(["git", "config", "user.name", "Test"], cwd=path, capture_output=True)
    subprocess.run(["git", "config", "commit.gpgsign", "false"], cwd=path, capture_output=True)
    subprocess.run(["git", "add", "."], cwd=path, capture_output=True)
    subprocess.run(["git", "commit", "-m", "init"], cwd=path, capture_output=True)


def git_commit(path, msg="update"):
    """Stage all and commit."""
    subprocess.run(["git", "add", "."], cwd=path, capture_output=True)
    subprocess.run(["git", "commit", "-m", msg], cwd=path, capture_output=True)


# ===========================================================================
# CliRunner helpers
# ===========================================================================


@pytest.fixture
def cli_runner():
    """Provide a Click CliRunner for in-process CLI testing."""
    return CliRunner()


def invoke_cli(runner, args, cwd=None, json_mode=False, env=None):
    """Invoke the idxguard CLI via CliRunner.

    Args:
        runner: CliRunner instance
        args: list of CLI arguments (e.g. ["check"])
        cwd: directory to run in
        json_mode: if True, prepend --json flag
        env: extra environment variables for this invocation
    Returns:
        click.testing.Result
    """
    from idxguard.cli import cli

    full_args = []
    if json_mode:
        full_args.append("--json")
    full_args.extend(args)

    old_cwd = os.getcwd()
    try:
        if cwd:
            os.chdir(str(cwd))
        result = runner.invoke(cli, full_args, env=env, catch_exceptions=False)
    finally:
        os.chdir(old_cwd)

    return result


# ===========================================================================
# JSON validation helpers
# ===========================================================================


def parse_json_output(result, command=None):
    """Parse JSON from a CliRunner result (any exit code)."""
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        pytest.fail(f"Invalid JSON from {command or '?'}: {e}\nOutput was:\n{result.output[:500]}")


def assert_json_envelope(data, command=None):
    """Validate that a parsed JSON dict follows the idxguard envelope contract."""
    assert isinstance(data, dict), f"Expected dict, got {type(data)}"
    for key in ("schema", "schema_version", "command", "version", "summary"):
        assert key in data, f"Missing '{key}' key in envelope"
    assert "timestamp" in data.get("_meta", {}), "Missing 'timestamp' in _meta"
    if command:
        assert data["command"] == command, f"Expected command={command}, got {data['command']}"
    assert isinstance(data["summary"], dict)
    assert "verdict" in data["summary"]


# ===========================================================================
# Rails project fixtures
# ===========================================================================


def schema_rb(*tables, extra=""):
    """Wrap table blocks in the ActiveRecord::Schema.define boilerplate."""
    body = "\n".join(tables)
    return (
        "# This file is auto-generated from the current state of the database.\n"
        'ActiveRecord::Schema[7.1].define(version: 2024_05_01_000000) do\n'
        '  enable_extension "plpgsql"\n'
        "\n"
        f"{body}\n"
        f"{extra}"
        "end\n"
    )


USERS_UNINDEXED = (
    '  create_table "users", force: :cascade do |t|\n'
    '    t.string "email", null: false\n'
    '    t.bigint "company_id"\n'
    '    t.datetime "created_at", null: false\n'
    "  end\n"
)

USERS_INDEXED = (
    '  create_table "users", force: :cascade do |t|\n'
    '    t.string "email", null: false\n'
    '    t.bigint "company_id"\n'
    '    t.datetime "created_at", null: false\n'
    '    t.index ["company_id"], name: "index_users_on_company_id"\n'
    "  end\n"
)

ADD_COMPANY_TO_USERS = (
    "class AddCompanyToUsers < ActiveRecord::Migration[7.1]\n"
    "  def change\n"
    "    add_column :users, :company_id, :bigint\n"
    "  end\n"
    "end\n"
)


@pytest.fixture
def rails_project(tmp_path):
    """Factory: write ``db/schema.rb`` and migrations into a fresh directory.

    Usage::

        root = rails_project(schema=schema_rb(USERS_UNINDEXED),
                             migrations={"20240101000000_add_company.rb": ADD_COMPANY_TO_USERS})
    """

    def _make(schema=None, migrations=None, name="app"):
        root = tmp_path / name
        (root / "db" / "migrate").mkdir(parents=True)
        if schema is not None:
            (root / "db" / "schema.rb").write_text(schema, encoding="utf-8")
        for filename, text in (migrations or {}).items():
            (root / "db" / "migrate" / filename).write_text(text, encoding="utf-8")
        return root

    return _make


@pytest.fixture
def rails_repo(rails_project):
    """A committed git repo holding only ``db/schema.rb`` (no migrations)."""
    root = rails_project(schema=schema_rb(USERS_UNINDEXED), name="repo")
    git_init(root)
    return root
