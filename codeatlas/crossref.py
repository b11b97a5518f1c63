"""Gap detection and read-only queries over a built module graph."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .graph import ModuleGraph
from .index import ExportIndex, ExportLocation
from .logging import get_logger
from .models import Gap, GapKind
from .rules import GapRules

logger = get_logger("crossref")


@dataclass(frozen=True)
class GapReport:
    dead_exports: Tuple[Gap, ...] = ()
    untested_exports: Tuple[Gap, ...] = ()
    undocumented_exports: Tuple[Gap, ...] = ()

    def all(self) -> Tuple[Gap, ...]:
        return self.dead_exports + self.untested_exports + self.undocumented_exports

    def counts(self) -> Dict[str, int]:
        return {
            GapKind.DEAD_EXPORT.value: len(self.dead_exports),
            GapKind.UNTESTED_EXPORT.value: len(self.untested_exports),
            GapKind.UNDOCUMENTED_EXPORT.value: len(self.undocumented_exports),
        }


class CrossReferenceAnalyzer:
    """Runs gap queries against an immutable graph and export index.

    An export ``(m, n)`` counts as referenced when some edge targets ``m``
    and either names ``n`` or imports the whole module. Queries do not
    mutate anything and may run concurrently.
    """

    def __init__(self, graph: ModuleGraph, index: ExportIndex, rules: Optional[GapRules] = None) -> None:
        self.graph = graph
        self.index = index
        self.rules = rules or GapRules()
        self._test_modules = frozenset(
            node.id for node in graph.nodes if any(self.rules.is_test_path(path) for path in node.paths)
        )

    def is_test_module(self, module_id: str) -> bool:
        return module_id in self._test_modules

    # ------------------------------------------------------------------
    # Gap queries

    def dead_exports(self) -> List[Gap]:
        """Exports no edge references; only entry points are exempt."""
        gaps = []
        for location in self._scoped():
            if self._is_entry_point(location):
                continue
            if not self._referenced(location, from_tests_only=False):
                gaps.append(_gap(GapKind.DEAD_EXPORT, location, "no module references this export"))
        return gaps

    def untested_exports(self) -> List[Gap]:
        """Exports no test module imports.

        Exports declared by test modules themselves are skipped unless the
        rules ask for them.
        """
        gaps = []
        for location in self._scoped():
            if not self.rules.include_test_exports and self.is_test_module(location.module_id):
                continue
            if not self._referenced(location, from_tests_only=True):
                gaps.append(_gap(GapKind.UNTESTED_EXPORT, location, "no test file references this export"))
        return gaps

    def undocumented_exports(self) -> List[Gap]:
        gaps = []
        for location in self._scoped():
            export = location.export
            if export.documented or not self.rules.is_documented_surface(export.kind):
                continue
            gaps.append(
                _gap(GapKind.UNDOCUMENTED_EXPORT, location, f"public {export.kind} has no doc comment")
            )
        return gaps

    def analyze(self, max_workers: int = 3) -> GapReport:
        """Run the three gap queries concurrently."""
        queries: List[Callable[[], List[Gap]]] = [
            self.dead_exports,
            self.untested_exports,
            self.undocumented_exports,
        ]
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="codeatlas-crossref") as pool:
            dead, untested, undocumented = [future.result() for future in [pool.submit(q) for q in queries]]
        report = GapReport(
            dead_exports=tuple(dead),
            untested_exports=tuple(untested),
            undocumented_exports=tuple(undocumented),
        )
        logger.debug("Gap counts: %s", report.counts())
        return report

    # ------------------------------------------------------------------
    # Graph queries

    def dependencies(self) -> Dict[str, List[str]]:
        return {node.id: sorted(set(self.graph.successors(node.id))) for node in self.graph.nodes}

    def dependents(self, module_id: str) -> List[str]:
        return sorted(set(self.graph.predecessors(module_id)))

    def external_dependencies(self) -> List[str]:
        return sorted({edge.target for edge in self.graph.external_edges})

    def cycles(self) -> List[List[str]]:
        """Strongly connected components with more than one module."""
        components = []
        for component in _strongly_connected(self.graph):
            if len(component) < 2:
                continue
            components.append(sorted(component))
        return sorted(components)

    # ------------------------------------------------------------------

    def _scoped(self) -> Iterator[ExportLocation]:
        return (location for location in self.index if self.rules.in_scope(location.path))

    def _is_entry_point(self, location: ExportLocation) -> bool:
        return self.rules.is_entry_point(location.module_id, location.name, location.path)

    def _referenced(self, location: ExportLocation, *, from_tests_only: bool) -> bool:
        for edge in self.graph.edges_to(location.module_id):
            if from_tests_only and not self.is_test_module(edge.source):
                continue
            if edge.references(location.name):
                return True
        return False


def _gap(kind: GapKind, location: ExportLocation, detail: str) -> Gap:
    return Gap(
        kind=kind,
        module_id=location.module_id,
        export_name=location.name,
        path=location.path,
        line=location.line,
        detail=detail,
    )


def _strongly_connected(graph: ModuleGraph) -> List[List[str]]:
    """Iterative Tarjan over sorted node ids, so output order is stable."""
    index_of: Dict[str, int] = {}
    lowlink: Dict[str, int] = {}
    on_stack = set()
    stack: List[str] = []
    components: List[List[str]] = []
    counter = 0

    for start in (node.id for node in graph.nodes):
        if start in index_of:
            continue
        work: List[Tuple[str, Iterator[str]]] = [(start, iter(graph.successors(start)))]
        index_of[start] = lowlink[start] = counter
        counter += 1
        stack.append(start)
        on_stack.add(start)

        while work:
            node, successors = work[-1]
            advanced = False
            for successor in successors:
                if successor not in index_of:
                    index_of[successor] = lowlink[successor] = counter
                    counter += 1
                    stack.append(successor)
                    on_stack.add(successor)
                    work.append((successor, iter(graph.successors(successor))))
                    advanced = True
                    break
                if successor in on_stack:
                    lowlink[node] = min(lowlink[node], index_of[successor])
            if advanced:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])
            if lowlink[node] == index_of[node]:
                component = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                components.append(component)
    return components


__all__ = ["CrossReferenceAnalyzer", "GapReport"]
