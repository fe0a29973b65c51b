"""Analyzers produce findings from parsed, bound source files.

Each analyzer exposes ``id``, ``version`` and ``run(root, files)``, which
``core.runner`` and the API drive.

Available analyzers:
    - NullPropagationAnalyzer: null checks replaceable by ``?.`` / ``?[]``
"""

from __future__ import annotations


# Lazy import to avoid circular dependencies
def __getattr__(name: str):
    if name == "NullPropagationAnalyzer":
        from .null_propagation import NullPropagationAnalyzer
        return NullPropagationAnalyzer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
