"""Plain structured report for an analysis run, plus JSON and summary output."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from .models import (
    DependencyEdge,
    ExportDecl,
    FileRecord,
    Gap,
    ImportDecl,
    ParseStatus,
    ResolutionStatus,
)
from .pipeline import AnalysisResult

REPORT_VERSION = "1"


class AnalysisReport:
    """Converts an AnalysisResult into dict/list/str/int data."""

    def __init__(self, result: AnalysisResult) -> None:
        self.result = result

    def statistics(self) -> Dict[str, Any]:
        result = self.result
        records = result.records
        return {
            "files": len(records),
            "modules": len(result.graph),
            "exports": sum(len(record.exports) for record in records),
            "imports": sum(len(record.imports) for record in records),
            "edges": len(result.graph.edges),
            "external_edges": len(result.graph.external_edges),
            "failed_files": sum(1 for record in records if record.status is ParseStatus.FAILED),
            "partial_files": sum(1 for record in records if record.status is ParseStatus.PARTIAL),
            "unresolved_imports": len(self.unresolved_imports()),
            "ambiguities": len(result.ambiguities),
            "gaps": result.gaps.counts(),
            "elapsed_seconds": round(result.elapsed, 3),
        }

    def unresolved_imports(self) -> List[Dict[str, Any]]:
        unresolved = []
        for record in self.result.records:
            for decl in record.imports:
                if decl.resolution is not None and decl.resolution.status is ResolutionStatus.UNRESOLVED:
                    unresolved.append(
                        {"path": record.path, "specifier": decl.specifier, "line": decl.span.start_line}
                    )
        return unresolved

    def as_dict(self) -> Dict[str, Any]:
        result = self.result
        analyzer = result.analyzer
        gaps = result.gaps
        return {
            "version": REPORT_VERSION,
            "root": str(result.root),
            "scope": result.scope,
            "statistics": self.statistics(),
            "modules": [_record_dict(record, result.graph.module_of(record.path)) for record in result.records],
            "graph": {
                "nodes": [
                    {"id": node.id, "paths": list(node.paths), "language": node.language}
                    for node in result.graph.nodes
                ],
                "edges": [_edge_dict(edge) for edge in result.graph.edges],
                "external_edges": [_edge_dict(edge) for edge in result.graph.external_edges],
            },
            "dependencies": analyzer.dependencies(),
            "gaps": {
                "dead_exports": [_gap_dict(gap) for gap in gaps.dead_exports],
                "untested_exports": [_gap_dict(gap) for gap in gaps.untested_exports],
                "undocumented_exports": [_gap_dict(gap) for gap in gaps.undocumented_exports],
            },
            "degraded_files": [
                {"path": record.path, "status": record.status.value, "reason": record.reason}
                for record in result.degraded
            ],
            "external_dependencies": analyzer.external_dependencies(),
            "unresolved_imports": self.unresolved_imports(),
            "cycles": analyzer.cycles(),
            "ambiguities": [
                {
                    "importer": item.importer,
                    "specifier": item.specifier,
                    "candidates": list(item.candidates),
                    "chosen": item.chosen,
                }
                for item in result.ambiguities
            ],
        }

    def summary(self) -> str:
        stats = self.statistics()
        gaps = stats["gaps"]
        lines = [
            f"Analyzed {stats['files']} files ({stats['modules']} modules) in {stats['elapsed_seconds']}s",
            f"Edges: {stats['edges']} internal, {stats['external_edges']} external",
            f"Degraded files: {stats['failed_files']} failed, {stats['partial_files']} partial",
            f"Dead exports: {gaps['dead_export']}",
            f"Untested exports: {gaps['untested_export']}",
            f"Undocumented exports: {gaps['undocumented_export']}",
        ]
        if self.result.scope is not None:
            lines.append(f"Gaps limited to: {self.result.scope}/")
        cycles = self.result.analyzer.cycles()
        if cycles:
            lines.append(f"Dependency cycles: {len(cycles)}")
        for record in self.result.degraded:
            lines.append(f"  ! {record.path}: {record.reason}")
        return "\n".join(lines)


def write_json(report: AnalysisReport, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.as_dict(), indent=2) + "\n", encoding="utf-8")
    return path


def _record_dict(record: FileRecord, module_id: Any) -> Dict[str, Any]:
    return {
        "path": record.path,
        "id": module_id,
        "language": record.language,
        "status": record.status.value,
        "reason": record.reason,
        "exports": [_export_dict(export) for export in record.exports],
        "imports": [_import_dict(decl) for decl in record.imports],
    }


def _export_dict(export: ExportDecl) -> Dict[str, Any]:
    return {
        "name": export.name,
        "kind": export.kind,
        "line": export.span.start_line,
        "end_line": export.span.end_line,
        "signature": export.signature,
        "doc": export.doc,
    }


def _import_dict(decl: ImportDecl) -> Dict[str, Any]:
    resolution = decl.resolution
    return {
        "specifier": decl.specifier,
        "names": list(decl.names),
        "line": decl.span.start_line,
        "resolution": resolution.status.value if resolution is not None else None,
        "target": resolution.target if resolution is not None else None,
    }


def _edge_dict(edge: DependencyEdge) -> Dict[str, Any]:
    return {
        "source": edge.source,
        "target": edge.target,
        "symbols": sorted(edge.symbols),
        "wildcard": edge.wildcard,
    }


def _gap_dict(gap: Gap) -> Dict[str, Any]:
    return {
        "kind": gap.kind.value,
        "module": gap.module_id,
        "export": gap.export_name,
        "path": gap.path,
        "line": gap.line,
        "detail": gap.detail,
    }


__all__ = ["AnalysisReport", "REPORT_VERSION", "write_json"]
