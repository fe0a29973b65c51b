"""Finding: the normalized detector output for a single simplifiable null check."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field

from . import NodeForm, Outcome, Severity

RULE_ID = "NP-USE-001"
WHEN_PART_IS_NULLABLE = "WhenPartIsNullable"


@dataclass(frozen=True, slots=True)
class Location:
    """Source-code location of a node: 1-based lines plus character offsets."""

    path: str
    line_start: int
    line_end: int
    start: int
    end: int

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "line_start": self.line_start,
            "line_end": self.line_end,
            "start": self.start,
            "end": self.end,
        }


@dataclass(frozen=True, slots=True)
class Finding:
    """Immutable finding record handed to the rewrite/reporting layer.

    ``location`` is the outer conditional or if-statement and keys the
    finding.  ``anchors`` holds, in order, the outer node, the checked
    expression and the candidate expression.
    """

    finding_id: str
    rule_id: str
    form: NodeForm
    severity: Severity
    message: str
    location: Location
    anchors: tuple[Location, Location, Location]
    when_part_is_nullable: bool
    fingerprint: str
    snippet: str = ""
    metadata: dict = field(default_factory=dict)

    @property
    def properties(self) -> dict[str, str]:
        if self.when_part_is_nullable:
            return {WHEN_PART_IS_NULLABLE: ""}
        return {}

    # ── serialisation ───────────────────────────────────────────────

    def to_dict(self) -> dict:
        d: dict = {
            "finding_id": self.finding_id,
            "rule_id": self.rule_id,
            "form": self.form.value,
            "severity": self.severity.value,
            "message": self.message,
            "location": self.location.to_dict(),
            "anchors": [a.to_dict() for a in self.anchors],
            "when_part_is_nullable": self.when_part_is_nullable,
            "properties": self.properties,
            "fingerprint": self.fingerprint,
        }
        if self.snippet:
            d["snippet"] = self.snippet
        if self.metadata:
            d["metadata"] = dict(self.metadata)
        return d


def make_fingerprint(
    rule_id: str,
    rel_path: str,
    checked: str,
    snippet: str,
) -> str:
    """Deterministic finding fingerprint: sha256(rule|path|checked|snippet)."""
    rel_path = rel_path.replace("\\", "/")
    payload = "|".join([rule_id, rel_path, checked.strip(), snippet.strip()])
    return "sha256:" + hashlib.sha256(payload.encode()).hexdigest()


@dataclass(frozen=True, slots=True)
class NodeResult:
    """Per-node decision: a finding, or the reason there is none."""

    outcome: Outcome
    finding: Finding | None = None
    reason: str = ""

    @property
    def reported(self) -> bool:
        return self.outcome is Outcome.REPORTED
