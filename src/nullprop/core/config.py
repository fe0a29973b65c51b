"""Analyzer configuration dataclass and its YAML loader."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from nullprop.model import Severity

_logger = logging.getLogger(__name__)

CONFIG_FILENAMES = (".nullprop.yaml", ".nullprop.yml", "nullprop.yaml")

# Per-file timeout override in seconds (0 = no limit).
TIMEOUT_ENV_VAR = "NULLPROP_ANALYZER_TIMEOUT"


class ConfigError(ValueError):
    """The configuration file is malformed."""


@dataclass(frozen=True)
class AnalyzerConfig:
    """Immutable analyzer configuration.

    ``prefer_null_propagation`` is the on/off switch of the rule itself; a
    disabled rule still discovers and parses files but reports nothing.
    """

    prefer_null_propagation: bool = True
    severity: Severity = Severity.INFO
    languages: tuple[str, ...] = ("csharp", "basic")
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    max_workers: int = 4
    analyzer_timeout: float | None = None

    # ── construction ────────────────────────────────────────────────

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AnalyzerConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            _logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))

        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            if key == "severity":
                try:
                    value = Severity(str(value).lower())
                except ValueError:
                    raise ConfigError(f"unknown severity {value!r}") from None
            elif key in ("languages", "include", "exclude"):
                if isinstance(value, str):
                    value = (value,)
                value = tuple(str(v) for v in (value or ()))
            elif key == "max_workers":
                value = int(value)
                if value < 1:
                    raise ConfigError("max_workers must be at least 1")
            elif key == "analyzer_timeout":
                value = float(value) if value else None
            elif key == "prefer_null_propagation":
                value = bool(value)
            kwargs[key] = value
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: Path) -> AnalyzerConfig:
        """Load configuration from a YAML file."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: configuration must be a mapping")
        _logger.debug("Loaded configuration from %s", path)
        return cls.from_mapping(data)

    @classmethod
    def discover(cls, root: Path) -> AnalyzerConfig:
        """Load the first config file found at *root*, else defaults."""
        for name in CONFIG_FILENAMES:
            candidate = root / name
            if candidate.is_file():
                return cls.from_yaml(candidate)
        return cls()

    # ── environment ─────────────────────────────────────────────────

    def with_env_overrides(self, environ: Mapping[str, str] | None = None) -> AnalyzerConfig:
        """Apply ``NULLPROP_ANALYZER_TIMEOUT`` on top of this config."""
        environ = os.environ if environ is None else environ
        timeout_str = environ.get(TIMEOUT_ENV_VAR, "")
        if not timeout_str:
            return self
        timeout = float(timeout_str)
        return replace(self, analyzer_timeout=timeout if timeout > 0 else None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "prefer_null_propagation": self.prefer_null_propagation,
            "severity": self.severity.value,
            "languages": list(self.languages),
            "include": list(self.include),
            "exclude": list(self.exclude),
            "max_workers": self.max_workers,
            "analyzer_timeout": self.analyzer_timeout,
        }
