"""Tests for output helpers: annotations and the JSON envelope."""

from __future__ import annotations

import json

from idxguard.output.formatter import github_annotation, json_envelope, to_json


class TestGithubAnnotation:
    def test_file_and_line(self):
        assert github_annotation("error", "boom", "db/migrate/1.rb", 7) == (
            "::error file=db/migrate/1.rb,line=7::boom"
        )

    def test_file_only(self):
        assert github_annotation("error", "boom", "db/migrate/1.rb") == "::error file=db/migrate/1.rb::boom"

    def test_bare(self):
        assert github_annotation("warning", "boom") == "::warning::boom"


class TestEnvelope:
    def test_keys(self):
        env = json_envelope("check", summary={"verdict": "ok"}, violations=[])
        assert env["schema"] == "idxguard-envelope-v1"
        assert env["command"] == "check"
        assert env["summary"] == {"verdict": "ok"}
        assert env["violations"] == []
        assert "timestamp" in env["_meta"]

    def test_to_json_sorted(self):
        text = to_json({"b": 1, "a": 2})
        assert text.index('"a"') < text.index('"b"')
        assert json.loads(text) == {"a": 2, "b": 1}
