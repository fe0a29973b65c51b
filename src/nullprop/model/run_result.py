"""ScanResult: the immutable, schema-aligned scan artifact."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from nullprop import __version__
from nullprop.model.finding import Finding


@dataclass(slots=True)
class ScanResult:
    """Assembled scan result matching ``scan_result.schema.json``.

    Constructed by ``core.runner`` after every file has been analyzed.
    """

    # ── run metadata ────────────────────────────────────────────────
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str = ""
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
    )
    tool_version: str = __version__
    config: dict = field(default_factory=dict)

    # ── outcome ─────────────────────────────────────────────────────
    findings: list[Finding] = field(default_factory=list)
    files_analyzed: list[str] = field(default_factory=list)
    files_skipped: list[str] = field(default_factory=list)
    cancelled: bool = False

    # ── serialisation ───────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        """Produce the full ScanResult JSON matching the schema."""
        severity_counts: dict[str, int] = {}
        form_counts: dict[str, int] = {}
        for f in self.findings:
            severity_counts[f.severity.value] = (
                severity_counts.get(f.severity.value, 0) + 1
            )
            form_counts[f.form.value] = form_counts.get(f.form.value, 0) + 1

        return {
            "schema_version": "scan_result_v1",
            "run": {
                "run_id": self.run_id,
                "project_id": self.project_id or "",
                "created_at": self.created_at,
                "tool_version": self.tool_version,
                "config": self.config,
            },
            "summary": {
                "cancelled": self.cancelled,
                "counts": {
                    "findings_total": len(self.findings),
                    "files_analyzed": len(self.files_analyzed),
                    "files_skipped": len(self.files_skipped),
                    "by_severity": severity_counts,
                    "by_form": form_counts,
                },
            },
            "files": {
                "analyzed": list(self.files_analyzed),
                "skipped": list(self.files_skipped),
            },
            "findings": [f.to_dict() for f in self.findings],
        }
