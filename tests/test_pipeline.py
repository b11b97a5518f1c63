"""End-to-end tests for codeatlas.pipeline."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from codeatlas.config import AnalysisConfig, CodeAtlasConfig
from codeatlas.errors import CancellationError, ConfigurationError
from codeatlas.extractors import ExtractorRegistry, ParsedSymbols
from codeatlas.models import FileRecord, ParseStatus
from codeatlas.pipeline import AnalysisPipeline
from codeatlas.report import AnalysisReport
from tests._fixtures.repo_builder import RepoBuilder


def _gap_names(gaps):
    return {(gap.module_id, gap.export_name) for gap in gaps}


def _sample_tree(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/a.ts": """
                export function foo(): number {
                  return 1;
                }

                /** Never imported. */
                export function bar(): void {}

                /** Only the tests use this. */
                export function baz(): string {
                  return "baz";
                }
                """,
            "src/b.ts": """
                import { foo } from './a';

                /** Doubles foo. */
                export const double = () => foo() * 2;
                """,
            "src/a.test.ts": """
                import { baz } from './a';

                test('baz', () => expect(baz()).toBe('baz'));
                """,
        }
    )


def test_gap_scenarios_end_to_end(repo_builder: RepoBuilder) -> None:
    _sample_tree(repo_builder)

    result = repo_builder.analyze()

    dead = _gap_names(result.gaps.dead_exports)
    untested = _gap_names(result.gaps.untested_exports)
    undocumented = _gap_names(result.gaps.undocumented_exports)

    assert ("src/a.ts", "foo") in undocumented
    assert ("src/a.ts", "foo") not in dead
    assert ("src/a.ts", "bar") in dead
    assert ("src/a.ts", "baz") not in dead
    assert ("src/a.ts", "baz") not in untested
    assert ("src/a.ts", "foo") in untested

    edge_targets = {(edge.source, edge.target): edge.symbols for edge in result.graph.edges}
    assert edge_targets[("src/b.ts", "src/a.ts")] == frozenset({"foo"})
    assert edge_targets[("src/a.test.ts", "src/a.ts")] == frozenset({"baz"})


def test_unparseable_file_is_listed_as_degraded(repo_builder: RepoBuilder) -> None:
    _sample_tree(repo_builder)
    repo_builder.write_bytes("src/broken.ts", b"export function broken( {\n  \xff\xfe\n")

    result = repo_builder.analyze()

    degraded = {record.path: record for record in result.degraded}
    assert set(degraded) == {"src/broken.ts"}
    assert degraded["src/broken.ts"].status is ParseStatus.FAILED
    assert "UTF-8" in (degraded["src/broken.ts"].reason or "")
    # the rest of the run is unaffected
    assert ("src/a.ts", "bar") in _gap_names(result.gaps.dead_exports)
    report = AnalysisReport(result).as_dict()
    assert report["degraded_files"][0]["path"] == "src/broken.ts"


def test_results_do_not_depend_on_worker_count(repo_builder: RepoBuilder) -> None:
    _sample_tree(repo_builder)
    repo_builder.write(
        {
            "src/c.ts": "import * as a from './a';\nexport const c = a;\n",
            "src/d.ts": "import { c } from './c';\nexport const d = c;\n",
        }
    )

    serial = repo_builder.analyze(CodeAtlasConfig(root=repo_builder.path(), analysis=AnalysisConfig(workers=1)))
    parallel = repo_builder.analyze(CodeAtlasConfig(root=repo_builder.path(), analysis=AnalysisConfig(workers=8)))

    assert serial.records == parallel.records
    assert serial.graph.edges == parallel.graph.edges
    assert serial.gaps == parallel.gaps


def test_missing_root_is_a_configuration_error(tmp_path: Path) -> None:
    pipeline = AnalysisPipeline(CodeAtlasConfig(root=tmp_path))

    with pytest.raises(ConfigurationError):
        pipeline.run(tmp_path / "nowhere")


def test_tree_without_source_files_is_a_configuration_error(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"README.md": "# nothing to analyze\n"})

    with pytest.raises(ConfigurationError):
        repo_builder.analyze()


def test_invalid_worker_count_is_rejected_before_extraction(repo_builder: RepoBuilder) -> None:
    _sample_tree(repo_builder)
    config = CodeAtlasConfig(root=repo_builder.path(), analysis=AnalysisConfig(workers=0))

    with pytest.raises(ConfigurationError):
        repo_builder.analyze(config)


class _BlockingExtractor:
    languages = ("python",)

    def __init__(self) -> None:
        self.started = threading.Event()
        self.release = threading.Event()

    def parse(self, path: str, source: bytes, language: str) -> ParsedSymbols:
        self.started.set()
        self.release.wait(timeout=5)
        return ParsedSymbols()


def test_cancel_event_stops_the_run(repo_builder: RepoBuilder) -> None:
    repo_builder.write({f"mod_{index}.py": "x = 1\n" for index in range(20)})
    extractor = _BlockingExtractor()
    registry = ExtractorRegistry()
    registry.register(extractor)
    pipeline = AnalysisPipeline(
        CodeAtlasConfig(root=repo_builder.path(), analysis=AnalysisConfig(workers=2)),
        registry=registry,
    )
    cancel = threading.Event()

    def _cancel_when_busy() -> None:
        extractor.started.wait(timeout=5)
        cancel.set()

    canceller = threading.Thread(target=_cancel_when_busy)
    canceller.start()
    try:
        with pytest.raises(CancellationError):
            pipeline.run(repo_builder.path(), cancel_event=cancel)
    finally:
        extractor.release.set()
        canceller.join()


def test_timeout_cancels_the_run(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"slow.py": "x = 1\n"})
    extractor = _BlockingExtractor()
    registry = ExtractorRegistry()
    registry.register(extractor)
    pipeline = AnalysisPipeline(
        CodeAtlasConfig(root=repo_builder.path(), analysis=AnalysisConfig(workers=1, timeout=0.2)),
        registry=registry,
    )

    try:
        with pytest.raises(CancellationError):
            pipeline.run(repo_builder.path())
    finally:
        extractor.release.set()


def test_analyze_records_accepts_prebuilt_records(tmp_path: Path) -> None:
    pipeline = AnalysisPipeline(CodeAtlasConfig(root=tmp_path))

    result = pipeline.analyze_records(
        [FileRecord.failed("bad.ts", "typescript", "boom"), FileRecord(path="ok.ts", language="typescript")]
    )

    assert [record.path for record in result.records] == ["bad.ts", "ok.ts"]
    assert [record.path for record in result.degraded] == ["bad.ts"]
    assert len(result.graph) == 2
