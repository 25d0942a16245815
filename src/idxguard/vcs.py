"""Git helpers: changed migration files and commit messages."""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path

from idxguard.config import MIGRATION_DIR

log = logging.getLogger(__name__)

_RE_MIGRATION_PATH = re.compile(rf"(?:^|/){re.escape(MIGRATION_DIR)}/.*\.rb$")


def is_migration_path(path: str) -> bool:
    """Return True if *path* looks like a Rails migration (``db/migrate/*.rb``)."""
    return bool(_RE_MIGRATION_PATH.search(path.replace("\\", "/")))


def _run_git(cmd: list[str], *, cwd: Path, timeout: int = 30) -> subprocess.CompletedProcess | None:
    """Run a git command, returning *None* on failure."""
    try:
        result = subprocess.run(
            cmd,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=timeout,
            encoding="utf-8",
            errors="replace",
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as exc:
        log.warning("git command failed: %s", exc)
        return None

    if result.returncode != 0:
        log.debug("git %s returned %d: %s", cmd[1], result.returncode, result.stderr.strip())
        return None

    return result


def _parse_porcelain(stdout: str) -> list[str]:
    """Paths from ``git status --porcelain``, skipping deletions.

    Renames (``R  old -> new``) report the new path.
    """
    paths: list[str] = []
    for line in stdout.splitlines():
        if len(line) < 4:
            continue
        status, path = line[:2], line[3:]
        if "D" in status:
            continue
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        paths.append(path.strip().strip('"'))
    return paths


def get_changed_migrations(root: Path, base_ref: str | None = None) -> list[str]:
    """Changed migration files, relative to *root*, in a stable order.

    With *base_ref* (CI pull request): ``git diff origin/<base_ref> HEAD``.
    Without it (local run): the working tree, untracked files included.
    Deleted files are never returned.
    """
    if base_ref:
        result = _run_git(
            ["git", "diff", "--name-only", "--diff-filter=d", f"origin/{base_ref}", "HEAD"],
            cwd=root,
        )
        paths = result.stdout.splitlines() if result else []
    else:
        result = _run_git(["git", "status", "--porcelain", "-u"], cwd=root)
        paths = _parse_porcelain(result.stdout) if result else []

    migrations = sorted({p.strip().replace("\\", "/") for p in paths if p.strip() and is_migration_path(p.strip())})
    log.debug("Changed files: %s", " ".join(migrations))
    return migrations


def last_commit_message(root: Path) -> str:
    result = _run_git(["git", "log", "-1", "--pretty=%B"], cwd=root)
    return result.stdout if result else ""


def range_commit_messages(root: Path, base_ref: str) -> str:
    """All commit messages in ``origin/<base_ref>..HEAD``."""
    result = _run_git(["git", "log", f"origin/{base_ref}..HEAD", "--pretty=%B"], cwd=root)
    return result.stdout if result else ""


def repo_root(cwd: Path | None = None) -> Path:
    """Top level of the enclosing git work tree, or *cwd* outside git."""
    cwd = Path(cwd or Path.cwd())
    result = _run_git(["git", "rev-parse", "--show-toplevel"], cwd=cwd)
    if result is None or not result.stdout.strip():
        return cwd
    return Path(result.stdout.strip())
