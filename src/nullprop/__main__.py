"""CLI entry-point for nullprop.

Usage:
    python -m nullprop <path>
    python -m nullprop <path> --json
    python -m nullprop <path> --symbols symbols.yaml --language csharp
    python -m nullprop scan --root <dir> --out <file> [--ci]
    python -m nullprop validate <instance.json> <schema_name>
    python -m nullprop languages
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from nullprop import __version__
from nullprop.contracts.load import validate_instance as _api_validate_instance
from nullprop.core.config import AnalyzerConfig, ConfigError
from nullprop.languages import supported_languages
from nullprop.semantics.compilation import Compilation, SymbolTableError
from nullprop.utils.exit_codes import ExitCode
from nullprop.utils.json_norm import stable_json_dump, stable_json_dumps

_KNOWN_COMMANDS = {"scan", "validate", "languages"}


def _print_human(result_dict: dict[str, Any]) -> None:
    """One line per finding plus a summary, on stderr."""
    counts = result_dict["summary"]["counts"]
    for f in result_dict["findings"]:
        loc = f["location"]
        snippet = f.get("snippet", "").splitlines()[0] if f.get("snippet") else ""
        print(
            f"{loc['path']}:{loc['line_start']}: {f['rule_id']} {f['message']}"
            + (f"  {snippet}" if snippet else ""),
            file=sys.stderr,
        )
    print(
        f"\n   {counts['findings_total']} finding(s) in {counts['files_analyzed']} file(s)"
        f" ({counts['files_skipped']} skipped)",
        file=sys.stderr,
    )
    if result_dict["summary"]["cancelled"]:
        print("   scan was cancelled before completion", file=sys.stderr)


def _add_common_options(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--symbols",
        type=Path,
        default=None,
        help="YAML symbol table (default: .nullprop-symbols.yaml at the root).",
    )
    p.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: .nullprop.yaml at the root).",
    )
    p.add_argument(
        "--language",
        dest="languages",
        action="append",
        default=None,
        metavar="ID",
        help="Restrict the scan to this language id (repeatable).",
    )
    p.add_argument(
        "--project-id",
        dest="project_id",
        default="",
        help="Attach a project identifier to the run.",
    )
    p.add_argument(
        "--ci",
        "--deterministic",
        dest="ci_mode",
        action="store_true",
        default=False,
        help="Enable deterministic output (stable IDs, timestamps, ordering).",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Log debug output to stderr.",
    )


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="nullprop",
        description="Find null checks that null propagation (?.) can simplify.",
    )
    p.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    sub = p.add_subparsers(dest="command")

    # ── scan subcommand ─────────────────────────────────────────────
    scan_p = sub.add_parser(
        "scan",
        help="Scan a directory and write the ScanResult JSON file.",
    )
    scan_p.add_argument(
        "--root",
        type=Path,
        required=True,
        help="Root directory to scan.",
    )
    scan_p.add_argument(
        "--out",
        type=Path,
        required=True,
        help="Path to write the ScanResult JSON file.",
    )
    _add_common_options(scan_p)

    # ── validate subcommand ─────────────────────────────────────────
    val_p = sub.add_parser(
        "validate",
        help="Validate a JSON instance against a bundled schema.",
    )
    val_p.add_argument("instance", type=Path, help="Path to the JSON file to validate.")
    val_p.add_argument("schema_name", help="Schema filename, e.g. scan_result.schema.json")

    # ── languages subcommand ────────────────────────────────────────
    sub.add_parser("languages", help="List the supported languages.")
    return p


def _build_default_parser() -> argparse.ArgumentParser:
    """Parser for default positional mode.

    Argparse subparsers greedily consume the first positional token, which
    would make ``nullprop <path> --json`` treat ``<path>`` as a command.  This
    parser is used when the first positional token is *not* a known command.
    """
    p = argparse.ArgumentParser(
        prog="nullprop",
        description="Find null checks that null propagation (?.) can simplify.",
    )
    p.add_argument(
        "path",
        type=Path,
        help="Root directory (or single .cs/.vb file) to scan.",
    )
    p.add_argument(
        "--json",
        dest="json_out",
        action="store_true",
        default=False,
        help="Print the full ScanResult JSON to stdout.",
    )
    _add_common_options(p)
    p.set_defaults(command=None)
    return p


def _load_inputs(args: argparse.Namespace, base: Path) -> tuple[AnalyzerConfig, Compilation]:
    config = AnalyzerConfig.from_yaml(args.config) if args.config else AnalyzerConfig.discover(base)
    if args.languages:
        config = dataclasses.replace(config, languages=tuple(args.languages))
    compilation = Compilation.load(args.symbols) if args.symbols else Compilation.discover(base)
    return config, compilation


def _run(args: argparse.Namespace, root: Path, out_path: Path | None) -> tuple[int, dict[str, Any] | None]:
    if not root.exists():
        print(f"error: path does not exist: {root}", file=sys.stderr)
        return ExitCode.ERROR, None
    base = root if root.is_dir() else root.parent
    try:
        config, compilation = _load_inputs(args, base)
    except (OSError, yaml.YAMLError, ConfigError, SymbolTableError) as e:
        print(f"error: {e}", file=sys.stderr)
        return ExitCode.ERROR, None

    from nullprop.core.runner import run_scan

    result = run_scan(
        root,
        config=config,
        compilation=compilation,
        project_id=args.project_id,
        out_path=out_path,
        ci_mode=args.ci_mode,
    )
    result_dict = result.to_dict()
    _print_human(result_dict)
    return (ExitCode.VIOLATION if result.findings else ExitCode.SUCCESS), result_dict


def main(argv: list[str] | None = None) -> int:
    """Entry-point: returns an exit code (0 = clean, 1 = findings, 2 = error)."""
    effective_argv = list(argv) if argv is not None else sys.argv[1:]

    first_positional = next(
        (a for a in effective_argv if not a.startswith("-")), None
    )
    if first_positional and first_positional not in _KNOWN_COMMANDS:
        args = _build_default_parser().parse_args(effective_argv)
    else:
        args = _build_parser().parse_args(effective_argv)

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    # ── validate subcommand ─────────────────────────────────────────
    if args.command == "validate":
        try:
            instance = json.loads(Path(args.instance).read_text(encoding="utf-8"))
            _api_validate_instance(instance, args.schema_name)
        except jsonschema.ValidationError as e:
            print(f"FAIL: {e.message}", file=sys.stderr)
            return ExitCode.VIOLATION
        except (OSError, ValueError) as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return ExitCode.ERROR
        print("OK")
        return ExitCode.SUCCESS

    # ── languages subcommand ────────────────────────────────────────
    if args.command == "languages":
        sys.stdout.write(stable_json_dumps(supported_languages()))
        return ExitCode.SUCCESS

    # ── scan subcommand ─────────────────────────────────────────────
    if args.command == "scan":
        rc, _ = _run(args, args.root, args.out)
        return rc

    # ── default positional-path mode ────────────────────────────────
    if getattr(args, "path", None) is None:
        print("error: please provide a path or use a subcommand.", file=sys.stderr)
        return ExitCode.ERROR

    rc, result_dict = _run(args, args.path, None)
    if result_dict is not None and args.json_out:
        stable_json_dump(result_dict, sys.stdout)
    return rc


if __name__ == "__main__":
    raise SystemExit(main())
