"""Module graph construction from resolved file records."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .index import ExportIndex, ExportLocation
from .logging import get_logger
from .models import DependencyEdge, FileRecord, ModuleNode, ResolutionStatus
from .resolver import ModuleResolver

logger = get_logger("graph")


class ModuleGraph:
    """Read-only set of modules and dependency edges for one run."""

    def __init__(
        self,
        nodes: Iterable[ModuleNode],
        edges: Iterable[DependencyEdge],
        external_edges: Iterable[DependencyEdge] = (),
    ) -> None:
        self._nodes: Mapping[str, ModuleNode] = MappingProxyType(
            {node.id: node for node in sorted(nodes, key=lambda item: item.id)}
        )
        self._edges = tuple(sorted(edges, key=_edge_order))
        self._external = tuple(sorted(external_edges, key=_edge_order))

        outgoing: Dict[str, List[DependencyEdge]] = {}
        incoming: Dict[str, List[DependencyEdge]] = {}
        for edge in self._edges:
            outgoing.setdefault(edge.source, []).append(edge)
            incoming.setdefault(edge.target, []).append(edge)
        self._outgoing = {key: tuple(value) for key, value in outgoing.items()}
        self._incoming = {key: tuple(value) for key, value in incoming.items()}
        self._module_by_path = {path: node.id for node in self._nodes.values() for path in node.paths}

    @property
    def nodes(self) -> Tuple[ModuleNode, ...]:
        return tuple(self._nodes.values())

    @property
    def edges(self) -> Tuple[DependencyEdge, ...]:
        return self._edges

    @property
    def external_edges(self) -> Tuple[DependencyEdge, ...]:
        return self._external

    def node(self, module_id: str) -> Optional[ModuleNode]:
        return self._nodes.get(module_id)

    def module_of(self, path: str) -> Optional[str]:
        return self._module_by_path.get(path)

    def edges_from(self, module_id: str) -> Tuple[DependencyEdge, ...]:
        return self._outgoing.get(module_id, ())

    def edges_to(self, module_id: str) -> Tuple[DependencyEdge, ...]:
        return self._incoming.get(module_id, ())

    def successors(self, module_id: str) -> List[str]:
        return [edge.target for edge in self.edges_from(module_id)]

    def predecessors(self, module_id: str) -> List[str]:
        return [edge.source for edge in self.edges_to(module_id)]

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)


@dataclass(frozen=True)
class GraphArtifacts:
    """Everything the builder produces in its single pass."""

    graph: ModuleGraph
    index: ExportIndex
    records: Tuple[FileRecord, ...]


def _edge_order(edge: DependencyEdge) -> Tuple[str, str]:
    return (edge.source, edge.target)


class _EdgeAccumulator:
    def __init__(self) -> None:
        self.symbols: Set[str] = set()
        self.wildcard = False

    def add(self, names: Iterable[str]) -> None:
        names = list(names)
        if names:
            self.symbols.update(names)
        else:
            self.wildcard = True


class ModuleGraphBuilder:
    """Aggregates FileRecords into a ModuleGraph and an ExportIndex."""

    def build(self, records: Iterable[FileRecord], resolver: ModuleResolver) -> GraphArtifacts:
        ordered = sorted(records, key=lambda record: record.path)
        resolved = tuple(
            record if all(decl.resolution is not None for decl in record.imports) else resolver.resolve_record(record)
            for record in ordered
        )

        members: Dict[str, List[FileRecord]] = {}
        for record in resolved:
            members.setdefault(resolver.module_id(record.path), []).append(record)
        nodes = [
            ModuleNode(id=module_id, paths=tuple(item.path for item in group), language=group[0].language)
            for module_id, group in members.items()
        ]

        internal: Dict[Tuple[str, str], _EdgeAccumulator] = {}
        external: Dict[Tuple[str, str], _EdgeAccumulator] = {}
        locations: List[ExportLocation] = []
        for record in resolved:
            source = resolver.module_id(record.path)
            locations.extend(ExportLocation(source, record.path, export) for export in record.exports)
            for decl in record.imports:
                result = decl.resolution
                if result is None:
                    continue
                if result.status is ResolutionStatus.RESOLVED and result.target is not None:
                    if result.target == source:
                        continue
                    if result.target not in members:
                        logger.debug("Dropping edge %s -> %s: target has no record", source, result.target)
                        continue
                    internal.setdefault((source, result.target), _EdgeAccumulator()).add(decl.names)
                elif result.status is ResolutionStatus.EXTERNAL:
                    external.setdefault((source, decl.specifier), _EdgeAccumulator()).add(decl.names)

        graph = ModuleGraph(
            nodes=nodes,
            edges=[_to_edge(key, acc, external=False) for key, acc in internal.items()],
            external_edges=[_to_edge(key, acc, external=True) for key, acc in external.items()],
        )
        logger.debug(
            "Built module graph: %d modules, %d edges, %d external edges",
            len(graph),
            len(graph.edges),
            len(graph.external_edges),
        )
        return GraphArtifacts(graph=graph, index=ExportIndex(locations), records=resolved)


def _to_edge(key: Tuple[str, str], acc: _EdgeAccumulator, *, external: bool) -> DependencyEdge:
    source, target = key
    return DependencyEdge(
        source=source,
        target=target,
        symbols=frozenset(acc.symbols),
        wildcard=acc.wildcard,
        external=external,
    )


__all__ = ["GraphArtifacts", "ModuleGraph", "ModuleGraphBuilder"]
