"""Centralized exit-code contract for all CLI commands.

Code  Meaning
----  -------
  0   Success: no simplifiable null checks found
  1   Findings: at least one null check can use ``?.`` / ``?[]``
  2   Error: usage error, missing file, parse or runtime failure
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    VIOLATION = 1
    ERROR = 2
