"""Runner: discovers files, analyzes them in parallel, builds a ScanResult."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from pathlib import Path

from nullprop.analyzers.null_propagation import (
    NullPropagationAnalyzer,
    TreeResult,
    assign_finding_ids,
)
from nullprop.contracts.load import validate_instance
from nullprop.core.cancellation import CancellationToken
from nullprop.core.config import AnalyzerConfig
from nullprop.core.discover import discover_source_files
from nullprop.languages import get_language
from nullprop.model.finding import Finding
from nullprop.model.run_result import ScanResult
from nullprop.semantics.compilation import Compilation
from nullprop.syntax.lexer import ParseError
from nullprop.utils.determinism import FIXED_TIMESTAMP, deterministic_run_id
from nullprop.utils.json_norm import stable_json_dumps

_logger = logging.getLogger(__name__)


def _enabled_extensions(config: AnalyzerConfig) -> frozenset[str]:
    extensions: set[str] = set()
    for language_id in config.languages:
        try:
            extensions.update(get_language(language_id).file_extensions)
        except ValueError:
            _logger.warning("Unknown language %r in configuration: ignored", language_id)
    return frozenset(extensions)


def run_scan(
    root: Path,
    *,
    config: AnalyzerConfig | None = None,
    compilation: Compilation | None = None,
    project_id: str = "",
    out_path: Path | None = None,
    cancellation: CancellationToken | None = None,
    ci_mode: bool = False,
    # Testing hooks for golden-fixture determinism
    _run_id: str | None = None,
    _created_at: str | None = None,
) -> ScanResult:
    """Analyze every supported file under *root* and assemble a ``ScanResult``.

    Files are analyzed on a thread pool; a file that fails to parse, raises or
    exceeds the per-file timeout is logged and counted as skipped.
    """
    root = Path(root)
    base = root.parent if root.is_file() else root
    config = (config or AnalyzerConfig.discover(base)).with_env_overrides()
    compilation = compilation or Compilation.discover(base)
    cancellation = cancellation or CancellationToken.none()

    files = discover_source_files(
        root,
        extensions=_enabled_extensions(config),
        include=config.include,
        exclude=config.exclude,
    )
    _logger.info("Scanning %d file(s) under %s", len(files), root)

    analyzer = NullPropagationAnalyzer(config, compilation, cancellation)

    # ── 1. analyze every file (with per-file timeout) ───────────────
    # Each file gets its own token so a timeout stops that worker only.
    results: list[tuple[Path, TreeResult | None]] = []
    with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
        futures: list[tuple[Path, CancellationToken, Future[TreeResult]]] = []
        for path in files:
            token = cancellation.linked()
            futures.append((path, token, pool.submit(analyzer.analyze_file, base, path, token)))
        for path, token, future in futures:
            try:
                results.append((path, future.result(timeout=config.analyzer_timeout)))
            except FuturesTimeoutError:
                token.cancel()
                _logger.warning(
                    "Analysis of '%s' timed out after %.0fs: skipped",
                    path, config.analyzer_timeout,
                )
                results.append((path, None))
            except ParseError as exc:
                _logger.warning("Cannot parse '%s': %s: skipped", path, exc.msg)
                results.append((path, None))
            except Exception:
                _logger.exception("Analysis of '%s' raised an exception: skipped", path)
                results.append((path, None))

    # ── 2. aggregate ────────────────────────────────────────────────
    findings: list[Finding] = []
    analyzed: list[str] = []
    skipped: list[str] = []
    cancelled = False
    for path, tree_result in results:
        rel = _rel(base, path)
        if tree_result is None or tree_result.skipped:
            skipped.append(rel)
            continue
        analyzed.append(rel)
        findings.extend(tree_result.findings)
        cancelled = cancelled or tree_result.cancelled
    assign_finding_ids(findings)

    # ── 3. assemble ScanResult ──────────────────────────────────────
    result = ScanResult(
        project_id=project_id,
        config={"root": "." if ci_mode else root.as_posix(), **config.to_dict()},
        findings=findings,
        files_analyzed=analyzed,
        files_skipped=skipped,
        cancelled=cancelled,
    )
    if ci_mode:
        result.run_id = deterministic_run_id(analyzed + [f.fingerprint for f in findings])
        result.created_at = FIXED_TIMESTAMP
    # Inject deterministic values for golden-fixture testing
    if _run_id is not None:
        result.run_id = _run_id
    if _created_at is not None:
        result.created_at = _created_at

    # ── 4. validate output against schema ───────────────────────────
    result_dict = result.to_dict()
    validate_instance(result_dict, "scan_result.schema.json")

    # ── 5. optionally write the artifact to disk ────────────────────
    if out_path is not None:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(stable_json_dumps(result_dict), encoding="utf-8")
        _logger.info("Wrote %s", out_path)

    return result


def _rel(base: Path, path: Path) -> str:
    try:
        return path.relative_to(base.resolve()).as_posix()
    except ValueError:
        return path.as_posix()
