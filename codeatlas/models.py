"""Core data models shared across codeatlas components."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Optional, Tuple


class ParseStatus(str, Enum):
    """Outcome of extracting symbols from one file."""

    OK = "ok"
    PARTIAL = "partial"
    FAILED = "failed"


class ResolutionStatus(str, Enum):
    RESOLVED = "resolved"
    EXTERNAL = "external"
    UNRESOLVED = "unresolved"


class GapKind(str, Enum):
    DEAD_EXPORT = "dead_export"
    UNTESTED_EXPORT = "untested_export"
    UNDOCUMENTED_EXPORT = "undocumented_export"


@dataclass(frozen=True)
class SourceSpan:
    """1-based, inclusive line range inside a file."""

    start_line: int
    end_line: int


@dataclass(frozen=True)
class SourceFile:
    """A discovered file paired with its detected language tag."""

    path: str
    language: str
    size: int = 0


@dataclass(frozen=True)
class ResolutionResult:
    """Where an import specifier points after resolution."""

    status: ResolutionStatus
    specifier: str
    target: Optional[str] = None

    @classmethod
    def resolved(cls, target: str, specifier: str) -> "ResolutionResult":
        return cls(status=ResolutionStatus.RESOLVED, specifier=specifier, target=target)

    @classmethod
    def external(cls, specifier: str) -> "ResolutionResult":
        return cls(status=ResolutionStatus.EXTERNAL, specifier=specifier)

    @classmethod
    def unresolved(cls, specifier: str) -> "ResolutionResult":
        return cls(status=ResolutionStatus.UNRESOLVED, specifier=specifier)

    @property
    def is_resolved(self) -> bool:
        return self.status is ResolutionStatus.RESOLVED


@dataclass(frozen=True)
class ExportDecl:
    """A named symbol a file makes available to other modules."""

    name: str
    kind: str
    span: SourceSpan
    signature: Optional[str] = None
    doc: Optional[str] = None

    @property
    def documented(self) -> bool:
        return bool(self.doc and self.doc.strip())


@dataclass(frozen=True)
class ImportDecl:
    """A reference from a file to another module.

    An empty ``names`` tuple means the whole module is imported.
    """

    specifier: str
    span: SourceSpan
    names: Tuple[str, ...] = ()
    resolution: Optional[ResolutionResult] = None

    @property
    def wildcard(self) -> bool:
        return not self.names

    def with_resolution(self, resolution: ResolutionResult) -> "ImportDecl":
        return replace(self, resolution=resolution)


@dataclass(frozen=True)
class FileRecord:
    """Extraction result for a single file; immutable once created."""

    path: str
    language: str
    exports: Tuple[ExportDecl, ...] = ()
    imports: Tuple[ImportDecl, ...] = ()
    status: ParseStatus = ParseStatus.OK
    reason: Optional[str] = None

    @classmethod
    def failed(cls, path: str, language: str, reason: str) -> "FileRecord":
        return cls(path=path, language=language, status=ParseStatus.FAILED, reason=reason)

    @property
    def degraded(self) -> bool:
        return self.status is not ParseStatus.OK


@dataclass(frozen=True)
class ModuleNode:
    """Normalized module identity for one or more files."""

    id: str
    paths: Tuple[str, ...]
    language: str

    @property
    def path(self) -> str:
        return self.paths[0]


@dataclass(frozen=True)
class DependencyEdge:
    """Directed dependency between two modules.

    ``wildcard`` marks whole-module imports. External edges point at the raw
    specifier rather than a module id.
    """

    source: str
    target: str
    symbols: FrozenSet[str] = field(default_factory=frozenset)
    wildcard: bool = False
    external: bool = False

    def references(self, name: str) -> bool:
        return self.wildcard or name in self.symbols


@dataclass(frozen=True)
class ResolutionAmbiguity:
    """A specifier that matched more than one candidate file."""

    importer: str
    specifier: str
    candidates: Tuple[str, ...]
    chosen: str


@dataclass(frozen=True)
class Gap:
    """A documentation, usage or test deficiency for one export."""

    kind: GapKind
    module_id: str
    export_name: str
    path: str = field(default="", compare=False)
    line: int = field(default=0, compare=False)
    detail: str = field(default="", compare=False)

    @property
    def sort_key(self) -> Tuple[str, str]:
        return (self.module_id, self.export_name)


__all__ = [
    "DependencyEdge",
    "ExportDecl",
    "FileRecord",
    "Gap",
    "GapKind",
    "ImportDecl",
    "ModuleNode",
    "ParseStatus",
    "ResolutionAmbiguity",
    "ResolutionResult",
    "ResolutionStatus",
    "SourceFile",
    "SourceSpan",
]
