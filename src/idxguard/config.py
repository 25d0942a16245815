"""Environment-driven settings.

Every knob can come from the environment (how CI jobs configure the
check) and be overridden by a CLI flag.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping

DEFAULT_SCHEMA_FILE = "db/schema.rb"
SKIP_MARKER = "[skip-index-check]"
MIGRATION_DIR = "db/migrate"


def _flag(value: str | None) -> bool:
    return (value or "0").strip() == "1"


@dataclass(frozen=True)
class Settings:
    debug: bool = False
    schema_file: str = DEFAULT_SCHEMA_FILE
    skip_override: bool = False
    base_ref: str | None = None
    skip_marker: str = SKIP_MARKER

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Read ``DEBUG``, ``SCHEMA_FILE``, ``SKIP_INDEX_CHECK``, ``GITHUB_BASE_REF``."""
        env = os.environ if environ is None else environ
        return cls(
            debug=_flag(env.get("DEBUG")),
            schema_file=env.get("SCHEMA_FILE") or DEFAULT_SCHEMA_FILE,
            skip_override=_flag(env.get("SKIP_INDEX_CHECK")),
            base_ref=env.get("GITHUB_BASE_REF") or None,
        )

    def override(self, **changes) -> Settings:
        """Return a copy with every non-None value in *changes* applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
