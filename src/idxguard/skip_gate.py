"""Decide whether the index check should be skipped for this run.

Three independent signals, checked in order; the first one present wins
and the rest are not consulted:

1. the skip marker in the most recent commit message,
2. the skip marker in any commit of ``origin/<base_ref>..HEAD``
   (only when a base ref is known),
3. the explicit override (``SKIP_INDEX_CHECK=1`` / ``--skip``).
"""

from __future__ import annotations

import logging
from pathlib import Path

from idxguard import vcs
from idxguard.config import Settings

log = logging.getLogger(__name__)


def should_skip(settings: Settings, root: Path) -> str | None:
    """Return the reason to skip, or None when the check must run."""
    marker = settings.skip_marker

    if marker in vcs.last_commit_message(root):
        return f"{marker} found in commit message"

    if settings.base_ref:
        if marker in vcs.range_commit_messages(root, settings.base_ref):
            return f"{marker} found in PR commits"

    if settings.skip_override:
        return "SKIP_INDEX_CHECK environment variable is set"

    log.debug("No skip signal present")
    return None
