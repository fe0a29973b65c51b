"""Tests for the canonical JSON normalization layer."""

import json
from pathlib import Path

from nullprop.model import Severity
from nullprop.model.finding import Location
from nullprop.utils.json_norm import stable_json_dump, stable_json_dumps


def test_stable_json_dumps_sorts_keys_and_adds_newline():
    s = stable_json_dumps({"b": 1, "a": 2})
    assert s.endswith("\n")
    # Keys should be sorted in the serialized output
    assert s.index('"a"') < s.index('"b"')


def test_stable_json_dumps_normalizes_paths():
    s = stable_json_dumps({"p": Path("a") / "b"})
    obj = json.loads(s)
    assert obj["p"] == "a/b"


def test_stable_json_dumps_converts_enums_and_dataclasses():
    loc = Location(path="a.cs", line_start=1, line_end=1, start=0, end=4)
    obj = json.loads(stable_json_dumps({"sev": Severity.HIGH, "loc": loc, "ids": ("x", "y")}))
    assert obj["sev"] == "high"
    assert obj["loc"]["path"] == "a.cs"
    assert obj["ids"] == ["x", "y"]


def test_stable_json_dumps_keeps_non_ascii():
    assert "café" in stable_json_dumps({"name": "café"})


def test_stable_json_dump_writes_to_file_like(tmp_path):
    out = tmp_path / "x.json"
    with out.open("w", encoding="utf-8") as f:
        stable_json_dump({"b": 1, "a": 2}, f)
    txt = out.read_text(encoding="utf-8")
    assert txt.endswith("\n")
    assert '"a"' in txt and '"b"' in txt
