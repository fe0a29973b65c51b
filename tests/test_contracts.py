"""Bundled schema loading and validation."""

from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest

from nullprop.api import analyze_source
from nullprop.contracts.load import available_schemas, load_schema, validate_file, validate_instance
from nullprop.utils.determinism import FIXED_TIMESTAMP, deterministic_run_id
from nullprop.utils.exit_codes import ExitCode


def _finding_dict() -> dict:
    result = analyze_source(
        "var v = x == null ? null : x.Name;\n",
        symbols={"locals": {"x": "string"}},
    )
    return result.findings[0].to_dict()


class TestSchemas:
    def test_available_schemas(self) -> None:
        assert available_schemas() == ["finding.schema.json", "scan_result.schema.json"]

    def test_load_schema(self) -> None:
        schema = load_schema("scan_result.schema.json")
        assert schema["properties"]["schema_version"]["const"] == "scan_result_v1"

    def test_unknown_schema(self) -> None:
        with pytest.raises(FileNotFoundError, match="Unknown schema"):
            load_schema("nope.schema.json")

    def test_finding_validates(self) -> None:
        validate_instance(_finding_dict(), "finding.schema.json")

    def test_finding_rejects_unknown_form(self) -> None:
        bad = {**_finding_dict(), "form": "switch"}
        with pytest.raises(jsonschema.ValidationError):
            validate_instance(bad, "finding.schema.json")

    def test_nullable_marker_property(self) -> None:
        result = analyze_source(
            "var v = n == null ? null : n.Value;\n",
            symbols={"locals": {"n": "int?"}},
        )
        assert result.findings[0].to_dict()["properties"] == {"WhenPartIsNullable": ""}


class TestValidateFile:
    def test_wrong_schema_version_is_readable(self, tmp_path: Path) -> None:
        path = tmp_path / "r.json"
        path.write_text(json.dumps({"schema_version": "v0"}), encoding="utf-8")
        with pytest.raises(ValueError, match="scan_result_v1"):
            validate_file(path, "scan_result.schema.json")

    def test_incomplete_result_fails(self, tmp_path: Path) -> None:
        path = tmp_path / "r.json"
        path.write_text(json.dumps({"schema_version": "scan_result_v1"}), encoding="utf-8")
        with pytest.raises(jsonschema.ValidationError):
            validate_file(path, "scan_result.schema.json")


class TestDeterminism:
    def test_fixed_timestamp_constant(self) -> None:
        assert FIXED_TIMESTAMP == "2000-01-01T00:00:00+00:00"

    def test_run_id_ignores_order(self) -> None:
        assert deterministic_run_id(["a", "b"]) == deterministic_run_id(["b", "a"])
        assert deterministic_run_id(["a"]) != deterministic_run_id(["b"])
        assert deterministic_run_id([]).startswith("ci-")


def test_exit_code_values():
    assert [int(c) for c in ExitCode] == [0, 1, 2]
