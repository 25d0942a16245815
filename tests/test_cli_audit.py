"""Tests for ``idxguard audit``: whole-schema coverage report."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))
from conftest import (
    USERS_INDEXED,
    USERS_UNINDEXED,
    assert_json_envelope,
    invoke_cli,
    parse_json_output,
    schema_rb,
)

COMMENTS = (
    '  create_table "comments", force: :cascade do |t|\n'
    '    t.bigint "commentable_id"\n'
    '    t.string "commentable_type"\n'
    "  end\n"
)

COMMENTS_INDEXED = (
    '  create_table "comments", force: :cascade do |t|\n'
    '    t.bigint "commentable_id"\n'
    '    t.string "commentable_type"\n'
    '    t.index ["commentable_type", "commentable_id"], name: "index_comments_on_commentable"\n'
    "  end\n"
)


class TestAudit:
    def test_reports_missing(self, cli_runner, rails_project):
        root = rails_project(schema=schema_rb(USERS_UNINDEXED, COMMENTS))

        result = invoke_cli(cli_runner, ["audit"], cwd=root)

        assert result.exit_code == 1
        assert "Analyzing schema.rb for missing indexes..." in result.output
        assert "VERDICT: 2 of 2 foreign key columns are missing indexes" in result.output
        assert "✗ Table 'users' has no index on 'company_id' (type: bigint)" in result.output
        assert "✗ Table 'comments' has no index on 'commentable_id' (type: polymorphic)" in result.output
        assert "  - Add with: add_index :comments, [:commentable_type, :commentable_id]" in result.output
        assert "Columns missing indexes: 2" in result.output

    def test_all_covered(self, cli_runner, rails_project):
        root = rails_project(schema=schema_rb(USERS_INDEXED, COMMENTS_INDEXED))

        result = invoke_cli(cli_runner, ["audit"], cwd=root)

        assert result.exit_code == 0
        assert "VERDICT: All 2 foreign key columns have indexes" in result.output
        assert "(none)" in result.output
        assert "Good job!" in result.output

    def test_table_filter(self, cli_runner, rails_project):
        root = rails_project(schema=schema_rb(USERS_INDEXED, COMMENTS))

        result = invoke_cli(cli_runner, ["audit", "--table", "users"], cwd=root)

        assert result.exit_code == 0
        assert "comments" not in result.output

    def test_missing_schema(self, cli_runner, rails_project):
        root = rails_project()

        result = invoke_cli(cli_runner, ["audit"], cwd=root)

        assert result.exit_code == 1
        # Only the error line; the banner is never printed
        assert result.output.splitlines() == ["Error: schema.rb not found at db/schema.rb"]

    def test_missing_schema_json(self, cli_runner, rails_project):
        root = rails_project()

        result = invoke_cli(cli_runner, ["audit"], cwd=root, json_mode=True)

        assert result.exit_code == 1
        assert result.output.splitlines() == ["Error: schema.rb not found at db/schema.rb"]

    def test_unreadable_schema(self, cli_runner, rails_project, monkeypatch):
        from idxguard.schema import snapshot

        root = rails_project(schema=schema_rb(USERS_INDEXED))

        def _denied(*args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(snapshot, "open", _denied, raising=False)
        result = invoke_cli(cli_runner, ["audit"], cwd=root)

        assert result.exit_code == 1
        assert result.output.splitlines() == [
            "Error: cannot read schema.rb at db/schema.rb: Permission denied",
        ]

    def test_schema_option(self, cli_runner, rails_project):
        root = rails_project()
        (root / "other.rb").write_text(schema_rb(USERS_INDEXED), encoding="utf-8")

        result = invoke_cli(cli_runner, ["audit", "--schema", "other.rb"], cwd=root)

        assert result.exit_code == 0

    def test_json(self, cli_runner, rails_project):
        root = rails_project(schema=schema_rb(USERS_UNINDEXED, COMMENTS_INDEXED))

        result = invoke_cli(cli_runner, ["audit"], cwd=root, json_mode=True)

        assert result.exit_code == 1
        data = parse_json_output(result, "audit")
        assert_json_envelope(data, "audit")
        assert data["summary"]["total"] == 2
        assert data["summary"]["covered"] == 1
        assert data["summary"]["missing"] == 1
        assert data["summary"]["indexes_found"] == 1
        assert [m["column"] for m in data["missing"]] == ["company_id"]
