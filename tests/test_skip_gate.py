"""Tests for the skip gate: three OR-combined, short-circuiting signals."""

from __future__ import annotations

from pathlib import Path

import pytest

from idxguard import vcs
from idxguard.config import Settings
from idxguard.skip_gate import should_skip


@pytest.fixture
def git_log(monkeypatch):
    """Stub commit messages and record which git lookups ran."""
    calls = []
    messages = {"last": "", "range": ""}

    def _last(root):
        calls.append("last")
        return messages["last"]

    def _range(root, base_ref):
        calls.append(("range", base_ref))
        return messages["range"]

    monkeypatch.setattr(vcs, "last_commit_message", _last)
    monkeypatch.setattr(vcs, "range_commit_messages", _range)
    return messages, calls


ROOT = Path(".")


class TestSignals:
    def test_no_signal(self, git_log):
        assert should_skip(Settings(), ROOT) is None

    def test_last_commit_marker(self, git_log):
        messages, _ = git_log
        messages["last"] = "Add company to users [skip-index-check]\n"
        assert should_skip(Settings(), ROOT) == "[skip-index-check] found in commit message"

    def test_range_marker(self, git_log):
        messages, calls = git_log
        messages["range"] = "first\n\nsecond [skip-index-check]\n"
        assert should_skip(Settings(base_ref="main"), ROOT) == "[skip-index-check] found in PR commits"
        assert ("range", "main") in calls

    def test_range_not_consulted_without_base_ref(self, git_log):
        messages, calls = git_log
        messages["range"] = "[skip-index-check]"
        assert should_skip(Settings(), ROOT) is None
        assert calls == ["last"]

    def test_override(self, git_log):
        assert should_skip(Settings(skip_override=True), ROOT) == (
            "SKIP_INDEX_CHECK environment variable is set"
        )

    def test_custom_marker(self, git_log):
        messages, _ = git_log
        messages["last"] = "[no-idx]"
        assert should_skip(Settings(skip_marker="[no-idx]"), ROOT) is not None


class TestShortCircuit:
    def test_last_commit_stops_further_checks(self, git_log):
        messages, calls = git_log
        messages["last"] = "[skip-index-check]"
        should_skip(Settings(base_ref="main", skip_override=True), ROOT)
        assert calls == ["last"]

    def test_any_one_signal_is_enough(self, git_log):
        messages, _ = git_log
        # Only the last of the three signals present
        assert should_skip(Settings(base_ref="main", skip_override=True), ROOT) is not None
