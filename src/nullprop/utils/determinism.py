"""Determinism utilities for CI-reproducible output.

When ``--ci`` is enabled the timestamp is fixed to a known epoch and the run
id is derived from the scanned content, so identical inputs produce
byte-identical JSON across machines and runs.
"""

from __future__ import annotations

import hashlib
from typing import Iterable

# Fixed timestamp for CI mode (ISO 8601 with timezone)
FIXED_TIMESTAMP = "2000-01-01T00:00:00+00:00"


def deterministic_run_id(parts: Iterable[str]) -> str:
    """Run id from a hash of *parts* (sorted, so input order does not matter)."""
    h = hashlib.sha256()
    for part in sorted(parts):
        h.update(part.encode("utf-8"))
        h.update(b"\0")
    return f"ci-{h.hexdigest()[:16]}"
