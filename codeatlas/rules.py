"""Pluggable classification predicates used by gap detection."""

from __future__ import annotations

import posixpath
from fnmatch import fnmatchcase
from typing import Callable, Iterable, Optional, Sequence

from .config import CodeAtlasConfig, GapConfig

TestFilePredicate = Callable[[str], bool]
EntryPointPredicate = Callable[[str, str, str], bool]
DocumentedSurfacePredicate = Callable[[str], bool]
ScopePredicate = Callable[[str], bool]


def build_test_matcher(patterns: Sequence[str]) -> TestFilePredicate:
    """Match a relative path, or its file name, against fnmatch patterns."""
    patterns = tuple(patterns)

    def _is_test(path: str) -> bool:
        name = posixpath.basename(path)
        return any(fnmatchcase(path, pattern) or fnmatchcase(name, pattern) for pattern in patterns)

    return _is_test


def build_entry_point_matcher(patterns: Sequence[str]) -> EntryPointPredicate:
    """Entry-point patterns.

    ``module:name`` matches both the module id (or path) and the export name.
    A pattern without ``:`` matches either the export name or the module.
    """
    scoped = []
    plain = []
    for pattern in patterns:
        if ":" in pattern:
            module_pattern, _, name_pattern = pattern.partition(":")
            scoped.append((module_pattern, name_pattern or "*"))
        else:
            plain.append(pattern)

    def _is_entry_point(module_id: str, name: str, path: str) -> bool:
        for pattern in plain:
            if fnmatchcase(name, pattern) or fnmatchcase(module_id, pattern) or fnmatchcase(path, pattern):
                return True
        for module_pattern, name_pattern in scoped:
            if not fnmatchcase(name, name_pattern):
                continue
            if fnmatchcase(module_id, module_pattern) or fnmatchcase(path, module_pattern):
                return True
        return False

    return _is_entry_point


def build_surface_matcher(kinds: Iterable[str]) -> DocumentedSurfacePredicate:
    surface = frozenset(kind.lower() for kind in kinds)
    return lambda kind: kind.lower() in surface


def build_scope_matcher(module: Optional[str]) -> ScopePredicate:
    """Limit reporting to files under ``module``; ``None`` keeps the whole tree."""
    if not module:
        return lambda path: True
    prefix = module.rstrip("/") + "/"
    return lambda path: path == module or path.startswith(prefix)


class GapRules:
    """Bundle of predicates handed to the cross-reference analyzer."""

    def __init__(
        self,
        *,
        is_test_path: Optional[TestFilePredicate] = None,
        is_entry_point: Optional[EntryPointPredicate] = None,
        is_documented_surface: Optional[DocumentedSurfacePredicate] = None,
        include_test_exports: bool = False,
        in_scope: Optional[ScopePredicate] = None,
    ) -> None:
        defaults = GapConfig()
        self.is_test_path = is_test_path or build_test_matcher(defaults.test_patterns)
        self.is_entry_point = is_entry_point or build_entry_point_matcher(defaults.entry_points)
        self.is_documented_surface = is_documented_surface or build_surface_matcher(
            defaults.documented_kinds
        )
        self.include_test_exports = include_test_exports
        self.in_scope = in_scope or build_scope_matcher(None)

    @classmethod
    def from_config(cls, config: CodeAtlasConfig) -> "GapRules":
        return cls.from_gap_config(
            config.gaps,
            include_test_exports=config.analysis.include_test_exports,
            module=config.analysis.module,
        )

    @classmethod
    def from_gap_config(
        cls,
        gaps: GapConfig,
        include_test_exports: bool = False,
        module: Optional[str] = None,
    ) -> "GapRules":
        return cls(
            is_test_path=build_test_matcher(gaps.test_patterns),
            is_entry_point=build_entry_point_matcher(gaps.entry_points),
            is_documented_surface=build_surface_matcher(gaps.documented_kinds),
            include_test_exports=include_test_exports,
            in_scope=build_scope_matcher(module),
        )


__all__ = [
    "DocumentedSurfacePredicate",
    "EntryPointPredicate",
    "GapRules",
    "ScopePredicate",
    "TestFilePredicate",
    "build_entry_point_matcher",
    "build_scope_matcher",
    "build_surface_matcher",
    "build_test_matcher",
]
