"""Contract shared by the per-language symbol extractors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Protocol, Tuple

from ..models import ExportDecl, ImportDecl


@dataclass
class ParsedSymbols:
    """Raw exports and imports produced by one extractor variant."""

    exports: List[ExportDecl] = field(default_factory=list)
    imports: List[ImportDecl] = field(default_factory=list)
    partial: bool = False


class SymbolExtractor(Protocol):
    """One language variant of the symbol extractor capability."""

    languages: Tuple[str, ...]

    def parse(self, path: str, source: bytes, language: str) -> ParsedSymbols:
        """Return exports and imports declared in ``source``.

        Implementations raise :class:`~codeatlas.errors.ExtractionFailure`
        when the file cannot be processed at all.
        """
        ...


__all__ = ["ParsedSymbols", "SymbolExtractor"]
