"""Run orchestration: discovery, parallel extraction, graph and gap analysis."""

from __future__ import annotations

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import CodeAtlasConfig, validate_config
from .crossref import CrossReferenceAnalyzer, GapReport
from .errors import CancellationError, ConfigurationError
from .extractors import ExtractorRegistry, default_registry
from .graph import ModuleGraph, ModuleGraphBuilder
from .index import ExportIndex
from .logging import get_logger, log_phase
from .models import FileRecord, ResolutionAmbiguity, SourceFile
from .repo_scanner import RepoScanner
from .resolver import ModuleResolver
from .rules import GapRules, build_scope_matcher

_POLL_INTERVAL = 0.1


@dataclass(frozen=True)
class AnalysisResult:
    """Complete, immutable outcome of one analysis run."""

    root: Path
    records: Tuple[FileRecord, ...]
    graph: ModuleGraph
    index: ExportIndex
    gaps: GapReport
    analyzer: CrossReferenceAnalyzer
    ambiguities: Tuple[ResolutionAmbiguity, ...]
    elapsed: float = 0.0
    scope: Optional[str] = None

    @property
    def degraded(self) -> Tuple[FileRecord, ...]:
        return tuple(record for record in self.records if record.degraded)


class AnalysisPipeline:
    """Coordinates one static analysis run over a source tree."""

    def __init__(
        self,
        config: Optional[CodeAtlasConfig] = None,
        registry: Optional[ExtractorRegistry] = None,
        scanner: Optional[RepoScanner] = None,
        rules: Optional[GapRules] = None,
    ) -> None:
        self.config = config or CodeAtlasConfig(root=Path.cwd())
        self.registry = registry or default_registry()
        self.scanner = scanner or RepoScanner()
        self.rules = rules or GapRules.from_config(self.config)
        self.logger = get_logger("pipeline")

    def run(
        self,
        root: Optional[Path] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnalysisResult:
        """Analyze ``root`` (defaults to the configured root).

        Raises ConfigurationError before any work starts when the root or the
        run parameters are unusable, and CancellationError when the run is
        interrupted or exceeds ``analysis.timeout``.
        """
        started = time.monotonic()
        repo_root = Path(root if root is not None else self.config.root).expanduser()
        if not repo_root.exists():
            raise ConfigurationError(f"Analysis root does not exist: {repo_root}")
        if not repo_root.is_dir():
            raise ConfigurationError(f"Analysis root is not a directory: {repo_root}")
        repo_root = repo_root.resolve()
        validate_config(self.config)

        with log_phase(self.logger, "scan"):
            discovered = self.scanner.scan(repo_root, self.config)
        files = [item for item in discovered if self.registry.supports(item.language)]
        if not files:
            raise ConfigurationError(f"No analyzable source files found under {repo_root}")
        module = self.config.analysis.module
        if module is not None:
            if not (repo_root / module).is_dir():
                raise ConfigurationError(f"Module directory does not exist: {repo_root / module}")
            # Files outside the module are still extracted; their imports decide what is referenced.
            in_module = build_scope_matcher(module)
            if not any(in_module(item.path) for item in files):
                raise ConfigurationError(f"No analyzable source files found under {repo_root / module}")

        self.logger.info(
            "Analyzing %d files under %s with %d workers",
            len(files),
            repo_root,
            self.config.analysis.workers,
        )
        with log_phase(self.logger, "extract"):
            records = self._extract_all(repo_root, files, cancel_event)
        return self.analyze_records(records, root=repo_root, started=started)

    def analyze_records(
        self,
        records: Iterable[FileRecord],
        root: Optional[Path] = None,
        started: Optional[float] = None,
    ) -> AnalysisResult:
        """Resolve, build and cross-reference already extracted records."""
        started = started if started is not None else time.monotonic()
        records = sorted(records, key=lambda record: record.path)

        with log_phase(self.logger, "graph"):
            resolver = ModuleResolver([record.path for record in records], self.config.resolution)
            artifacts = ModuleGraphBuilder().build(records, resolver)
        with log_phase(self.logger, "gaps"):
            analyzer = CrossReferenceAnalyzer(artifacts.graph, artifacts.index, self.rules)
            gaps = analyzer.analyze()

        result = AnalysisResult(
            root=root or self.config.root,
            records=artifacts.records,
            graph=artifacts.graph,
            index=artifacts.index,
            gaps=gaps,
            analyzer=analyzer,
            ambiguities=resolver.ambiguities,
            elapsed=time.monotonic() - started,
            scope=self.config.analysis.module,
        )
        for record in result.degraded:
            self.logger.warning("Degraded file %s (%s): %s", record.path, record.status.value, record.reason)
        self.logger.info(
            "Analysis complete: %d modules, %d edges, %d gaps",
            len(result.graph),
            len(result.graph.edges),
            len(gaps.all()),
        )
        return result

    # ------------------------------------------------------------------
    # Extraction

    def extract_file(self, root: Path, source: SourceFile) -> FileRecord:
        try:
            content = (root / source.path).read_bytes()
        except OSError as exc:
            return FileRecord.failed(source.path, source.language, f"unreadable file: {exc}")
        try:
            content.decode("utf-8")
        except UnicodeDecodeError as exc:
            return FileRecord.failed(source.path, source.language, f"file is not valid UTF-8: {exc}")
        self.logger.debug("Extracting %s (%s)", source.path, source.language)
        return self.registry.extract(source.path, content, source.language)

    def _extract_all(
        self,
        root: Path,
        files: Sequence[SourceFile],
        cancel_event: Optional[threading.Event],
    ) -> List[FileRecord]:
        workers = self.config.analysis.workers
        timeout = self.config.analysis.timeout
        deadline = time.monotonic() + timeout if timeout is not None else None

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="codeatlas-extract")
        queue = iter(files)
        pending: Dict[Future, SourceFile] = {}
        results: Dict[str, FileRecord] = {}
        try:
            while True:
                self._check_cancelled(cancel_event, deadline, timeout)
                # Only a bounded number of tasks is in flight so cancellation stops issuing new ones.
                while len(pending) < workers * 2:
                    source = next(queue, None)
                    if source is None:
                        break
                    pending[executor.submit(self.extract_file, root, source)] = source
                if not pending:
                    break

                done, _ = wait(list(pending), timeout=_POLL_INTERVAL, return_when=FIRST_COMPLETED)
                for future in done:
                    source = pending.pop(future)
                    results[source.path] = self._collect(future, source)
        except KeyboardInterrupt as exc:
            executor.shutdown(wait=False, cancel_futures=True)
            raise CancellationError("Analysis interrupted") from exc
        except CancellationError:
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown(wait=True)
        return [results[path] for path in sorted(results)]

    def _collect(self, future: Future, source: SourceFile) -> FileRecord:
        try:
            return future.result()
        except Exception as exc:
            self.logger.warning("Extraction worker failed for %s: %s", source.path, exc)
            return FileRecord.failed(source.path, source.language, f"{type(exc).__name__}: {exc}")

    @staticmethod
    def _check_cancelled(
        cancel_event: Optional[threading.Event],
        deadline: Optional[float],
        timeout: Optional[float],
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise CancellationError("Analysis cancelled")
        if deadline is not None and time.monotonic() >= deadline:
            raise CancellationError(f"Analysis timed out after {timeout:g}s")


__all__ = ["AnalysisPipeline", "AnalysisResult"]
