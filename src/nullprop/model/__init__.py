"""Enums shared across the detector, runner and reporting layers."""

from __future__ import annotations

from enum import Enum


class Severity(str, Enum):
    """Severity attached to every reported finding."""

    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Polarity(str, Enum):
    """Which way a null check points."""

    EQUALS_NULL = "equals_null"
    NOT_EQUALS_NULL = "not_equals_null"

    def negate(self) -> Polarity:
        if self is Polarity.EQUALS_NULL:
            return Polarity.NOT_EQUALS_NULL
        return Polarity.EQUALS_NULL


class Outcome(str, Enum):
    """Result of analyzing a single node.

    Everything except ``REPORTED`` means "no finding for this node";
    ``CANCELLED`` additionally means the analysis was abandoned early.
    """

    REPORTED = "reported"
    NOT_APPLICABLE = "not_applicable"
    CLASSIFICATION_MISS = "classification_miss"
    MATCH_MISS = "match_miss"
    SAFETY_VETO = "safety_veto"
    CANCELLED = "cancelled"


class NodeForm(str, Enum):
    """Syntactic form a finding was reported on."""

    TERNARY = "ternary"
    IF_STATEMENT = "if_statement"
