"""
Project analyzer: drives detection, classification and rule evaluation
over every Go file under a path.

Features:
    - Configurable via ScannerConfig
    - Error isolation per file
    - Optional parallel scanning with a per-file timeout
    - Progress reporting
"""

from __future__ import annotations

import fnmatch
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Callable, List, Optional, Sequence, Set

from .authorization import DEFAULT_VOCABULARY, AuthVocabulary
from .classification import SecurityClassifier
from .config import ScannerConfig
from .detectors import BaseDetector, default_detectors
from .errors import SourceError
from .models import Endpoint, Framework, ScanResult
from .rules import Rule, RuleEngine
from .source import SourceLoader, SyntaxSource

logger = logging.getLogger("apiposture.analyzer")

ProgressCallback = Callable[[int, int, str], None]


@dataclass
class FileResult:
    """Discovery output for one file."""
    file_path: str
    endpoints: List[Endpoint] = field(default_factory=list)
    frameworks: Set[Framework] = field(default_factory=set)
    error: Optional[str] = None


def _glob_match(rel_path: str, patterns: Sequence[str]) -> bool:
    # "**/x" should also match "x" at the root, hence the leading slash variant
    candidates = (rel_path, "/" + rel_path)
    return any(fnmatch.fnmatch(c, p) for p in patterns for c in candidates)


class ProjectAnalyzer:
    """
    Scans a Go project and returns a ScanResult.

    Files are independent: a parse failure or unexpected error in one file
    is recorded in ``parse_errors`` and never affects the others.
    """

    def __init__(self, config: Optional[ScannerConfig] = None,
                 vocabulary: Optional[AuthVocabulary] = None,
                 detectors: Optional[Sequence[BaseDetector]] = None,
                 rules: Optional[Sequence[Rule]] = None):
        self.config = config or ScannerConfig()
        vocab = (vocabulary or DEFAULT_VOCABULARY).with_auth_patterns(self.config.auth_patterns)
        self.detectors: List[BaseDetector] = list(detectors) if detectors is not None else default_detectors(vocab)
        self.loader = SourceLoader(max_file_size_mb=self.config.max_file_size_mb)
        self.classifier = SecurityClassifier()
        self.engine = RuleEngine(self.config.active_rules(), rules=rules)
        self._lock = Lock()

    # -------------------------------------------------------------------------
    # File collection
    # -------------------------------------------------------------------------

    def collect_files(self, target: Path) -> List[str]:
        """Go files under target honoring include/exclude globs, sorted."""
        if target.is_file():
            return [str(target)] if target.suffix == ".go" else []

        files = []
        for root, dirs, names in os.walk(target):
            rel_root = Path(root).relative_to(target).as_posix()
            rel_root = "" if rel_root == "." else rel_root + "/"
            # Prune excluded directories before descending
            dirs[:] = sorted(
                d for d in dirs if not _glob_match(f"{rel_root}{d}/", self.config.exclude)
            )
            for name in sorted(names):
                rel = rel_root + name
                if not _glob_match(rel, self.config.include):
                    continue
                if _glob_match(rel, self.config.exclude):
                    continue
                files.append(str(Path(root) / name))
        return files

    # -------------------------------------------------------------------------
    # Per-file discovery
    # -------------------------------------------------------------------------

    def discover(self, source: SyntaxSource) -> FileResult:
        """
        Run every accepting detector over one parsed file.

        Detector outputs are unioned as-is: a file importing two frameworks can
        yield one endpoint per framework for the same call. Endpoints are sorted
        by (line, framework) so detector order never shows in the result.
        """
        result = FileResult(file_path=source.file_path)
        for detector in self.detectors:
            if not detector.can_handle(source):
                continue
            result.frameworks.add(detector.framework)
            result.endpoints.extend(detector.discover(source))
        result.endpoints.sort(key=lambda ep: (ep.line_number, ep.framework.value))
        return result

    def _discover_isolated(self, source: SyntaxSource) -> FileResult:
        try:
            return self.discover(source)
        except Exception as e:
            logger.error(f"Unexpected error scanning {source.file_path}: {e}")
            return FileResult(file_path=source.file_path, error=f"analysis failed: {e}")

    def _scan_single_file(self, file_path: str) -> FileResult:
        """
        Scan a single file with error isolation.
        """
        source, error = self.loader.try_parse_file(file_path)
        if error is not None:
            return FileResult(file_path=file_path, error=error)
        return self._discover_isolated(source)

    def _scan_sequential(self, files: List[str], progress_cb: Optional[ProgressCallback]) -> List[FileResult]:
        results = []
        for i, fp in enumerate(files):
            if progress_cb:
                progress_cb(i + 1, len(files), fp)
            results.append(self._scan_single_file(fp))
        return results

    def _scan_parallel(self, files: List[str], progress_cb: Optional[ProgressCallback]) -> List[FileResult]:
        """
        Parallel file scanning for large codebases.
        Results are collected in file order so output stays deterministic.

        The per-file timeout is best-effort: each wait starts when collection
        reaches that file, and a worker thread stuck in a file cannot be
        killed. Once a file has timed out, the pool is released without
        waiting for that worker, although the interpreter still joins it at exit.
        """
        results: List[Optional[FileResult]] = [None] * len(files)
        completed = 0
        timed_out = False
        logger.info(f"Starting parallel scan with {self.config.parallel_workers} workers")

        executor = ThreadPoolExecutor(max_workers=max(1, self.config.parallel_workers))
        try:
            futures = [executor.submit(self._scan_single_file, fp) for fp in files]
            for index, (fp, future) in enumerate(zip(files, futures)):
                try:
                    found = future.result(timeout=self.config.timeout_seconds)
                except FutureTimeoutError:
                    logger.error(f"Timed out scanning {fp} after {self.config.timeout_seconds}s")
                    found = FileResult(file_path=fp, error=f"timed out after {self.config.timeout_seconds}s")
                    timed_out = True
                except Exception as e:
                    logger.error(f"Task error for {fp}: {e}")
                    found = FileResult(file_path=fp, error=f"analysis failed: {e}")

                with self._lock:
                    results[index] = found
                    completed += 1
                if progress_cb:
                    progress_cb(completed, len(files), fp)
        finally:
            executor.shutdown(wait=not timed_out)

        return [r for r in results if r is not None]

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------

    def _finish(self, result: ScanResult, file_results: List[FileResult]) -> ScanResult:
        endpoints: List[Endpoint] = []
        for fr in file_results:
            if fr.error is not None:
                logger.debug(f"Skipping {fr.file_path}: {fr.error}")
                result.parse_errors[fr.file_path] = fr.error
                continue
            result.frameworks_detected.update(fr.frameworks)
            endpoints.extend(fr.endpoints)

        result.endpoints = endpoints
        self.classifier.classify_all(result.endpoints)

        findings = []
        for finding in self.engine.evaluate_all(result.endpoints):
            if not self.config.is_rule_enabled(finding.rule_id):
                continue
            suppressed, reason = self.config.is_suppressed(finding.rule_id, finding.route())
            if suppressed:
                finding = finding.suppress(reason)
            findings.append(finding)
        result.findings = findings

        result.end_time = datetime.now()
        logger.info(
            f"Scan complete: {len(result.endpoints)} endpoints, {len(result.active_findings)} findings "
            f"from {len(result.files_scanned)} files in {result.duration_ms}ms"
        )
        return result

    def analyze(self, path: str, parallel: bool = False,
                progress_cb: Optional[ProgressCallback] = None) -> ScanResult:
        """
        Scan a file or directory.

        Raises FileNotFoundError when path does not exist; every per-file
        problem ends up in ``parse_errors`` instead.
        """
        target = Path(path).resolve()
        if not target.exists():
            raise FileNotFoundError(f"Scan path not found: {path}")

        result = ScanResult(scan_path=str(target))
        files = self.collect_files(target)
        result.files_scanned = files
        logger.info(f"Scanning {len(files)} Go files under {target}")

        if parallel and len(files) > 1:
            file_results = self._scan_parallel(files, progress_cb)
        else:
            file_results = self._scan_sequential(files, progress_cb)
        return self._finish(result, file_results)

    def analyze_content(self, file_path: str, content: str) -> ScanResult:
        """Scan in-memory Go source as if it were a single-file project."""
        result = ScanResult(scan_path=file_path, files_scanned=[file_path])
        try:
            source = self.loader.parse_content(file_path, content)
        except SourceError as e:
            file_result = FileResult(file_path=file_path, error=e.reason)
        else:
            file_result = self._discover_isolated(source)
        return self._finish(result, [file_result])
