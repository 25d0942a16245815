"""Shared output helpers: GitHub annotations and the JSON envelope."""

from __future__ import annotations

import json as _json
from datetime import datetime, timezone

# Envelope schema versioning (semver: major.minor.patch)
ENVELOPE_SCHEMA_VERSION = "1.0.0"
ENVELOPE_SCHEMA_NAME = "idxguard-envelope-v1"


def github_annotation(level: str, message: str, path: str | None = None, line: int | None = None) -> str:
    """Format a GitHub Actions workflow command such as ``::error file=x::msg``."""
    props = []
    if path:
        props.append(f"file={path}")
        if line is not None:
            props.append(f"line={line}")
    if props:
        return f"::{level} {','.join(props)}::{message}"
    return f"::{level}::{message}"


def to_json(data) -> str:
    """Serialize data to a JSON string with deterministic key ordering.

    Uses ``sort_keys=True`` so that identical inputs always produce
    byte-identical output apart from ``_meta``.
    """
    return _json.dumps(data, indent=2, default=str, sort_keys=True)


def _get_version() -> str:
    from idxguard import __version__

    return __version__


def json_envelope(command: str, summary: dict | None = None, **payload) -> dict:
    """Wrap command output in a self-describing envelope.

    Returns a dict with at minimum::

        {
            "schema":         "idxguard-envelope-v1",
            "schema_version": "1.0.0",
            "command":        "check",
            "version":        "<current>",
            "summary":        { ... },
            "_meta":          {"timestamp": "2026-02-12T14:30:00Z"},
            ...payload
        }

    The timestamp lives in ``_meta`` so every other key stays identical
    across runs on identical inputs.
    """
    ts = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")

    out: dict = {
        "schema": ENVELOPE_SCHEMA_NAME,
        "schema_version": ENVELOPE_SCHEMA_VERSION,
        "command": command,
        "version": _get_version(),
        "summary": summary or {},
    }
    out.update(payload)
    out["_meta"] = {"timestamp": ts}
    return out
