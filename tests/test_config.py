"""Analyzer configuration: YAML loading, validation and env overrides."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from nullprop.core.config import AnalyzerConfig, ConfigError
from nullprop.model import Severity


class TestFromMapping:
    def test_defaults(self) -> None:
        config = AnalyzerConfig()
        assert config.prefer_null_propagation is True
        assert config.severity is Severity.INFO
        assert config.languages == ("csharp", "basic")
        assert config.analyzer_timeout is None

    def test_values_are_coerced(self) -> None:
        config = AnalyzerConfig.from_mapping(
            {
                "severity": "HIGH",
                "languages": "basic",
                "exclude": ["generated"],
                "max_workers": "2",
                "analyzer_timeout": 0,
            }
        )
        assert config.severity is Severity.HIGH
        assert config.languages == ("basic",)
        assert config.exclude == ("generated",)
        assert config.max_workers == 2
        assert config.analyzer_timeout is None

    def test_unknown_keys_warn(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="nullprop.core.config"):
            config = AnalyzerConfig.from_mapping({"colour": "blue"})
        assert config == AnalyzerConfig()
        assert "colour" in caplog.text

    @pytest.mark.parametrize(
        "data",
        [{"severity": "fatal"}, {"max_workers": 0}],
    )
    def test_invalid_values(self, data: dict) -> None:
        with pytest.raises(ConfigError):
            AnalyzerConfig.from_mapping(data)

    def test_to_dict(self) -> None:
        d = AnalyzerConfig(severity=Severity.LOW, include=("src/**/*",)).to_dict()
        assert d["severity"] == "low"
        assert d["include"] == ["src/**/*"]
        assert d["languages"] == ["csharp", "basic"]


class TestYaml:
    def test_from_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.yaml"
        path.write_text("prefer_null_propagation: false\nseverity: medium\n", encoding="utf-8")
        config = AnalyzerConfig.from_yaml(path)
        assert config.prefer_null_propagation is False
        assert config.severity is Severity.MEDIUM

    def test_empty_yaml_is_default(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.yaml"
        path.write_text("", encoding="utf-8")
        assert AnalyzerConfig.from_yaml(path) == AnalyzerConfig()

    def test_non_mapping_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.yaml"
        path.write_text("- csharp\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="mapping"):
            AnalyzerConfig.from_yaml(path)

    def test_discover(self, tmp_path: Path) -> None:
        assert AnalyzerConfig.discover(tmp_path) == AnalyzerConfig()
        (tmp_path / ".nullprop.yml").write_text("max_workers: 8\n", encoding="utf-8")
        assert AnalyzerConfig.discover(tmp_path).max_workers == 8


class TestEnvOverrides:
    def test_no_variable_returns_same_config(self) -> None:
        config = AnalyzerConfig()
        assert config.with_env_overrides({}) is config

    def test_timeout_from_environment(self) -> None:
        config = AnalyzerConfig().with_env_overrides({"NULLPROP_ANALYZER_TIMEOUT": "5"})
        assert config.analyzer_timeout == 5.0

    def test_zero_disables_timeout(self) -> None:
        config = AnalyzerConfig(analyzer_timeout=10.0)
        assert config.with_env_overrides({"NULLPROP_ANALYZER_TIMEOUT": "0"}).analyzer_timeout is None
