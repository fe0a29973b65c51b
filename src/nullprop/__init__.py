"""nullprop: finds null checks that null propagation (``?.``) can replace."""

__all__ = [
    "__version__",
    "analyze_file",
    "analyze_source",
    "scan_project",
    "validate_instance",
]
__version__ = "0.1.0"

from nullprop.api import (  # noqa: E402, F401
    analyze_file,
    analyze_source,
    scan_project,
    validate_instance,
)
