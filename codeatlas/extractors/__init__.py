"""Symbol extractor variants and the registry that selects them by language tag."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, Iterable, List, Optional

from ..errors import ExtractionFailure
from ..logging import get_logger
from ..models import ExportDecl, FileRecord, ImportDecl, ParseStatus
from .base import ParsedSymbols, SymbolExtractor
from .python import PythonExtractor
from .rust import RustExtractor
from .typescript import TypeScriptExtractor

_ENTRY_POINT_GROUP = "codeatlas.extractors"
_PARTIAL_REASON = "syntax errors recovered by the parser"

_BUILTIN_FACTORIES: Dict[str, Callable[[], SymbolExtractor]] = {
    "python": PythonExtractor,
    "typescript": TypeScriptExtractor,
    "rust": RustExtractor,
}

logger = get_logger("extractors")


class ExtractorRegistry:
    """Maps language tags to extractor variants."""

    def __init__(self) -> None:
        self._variants: Dict[str, SymbolExtractor] = {}

    def register(self, extractor: SymbolExtractor, languages: Optional[Iterable[str]] = None) -> None:
        tags = list(languages) if languages is not None else list(getattr(extractor, "languages", ()))
        if not tags:
            raise ValueError("Extractor must declare at least one language tag")
        for tag in tags:
            self._variants[tag.lower()] = extractor

    def supports(self, language: str) -> bool:
        return language.lower() in self._variants

    def languages(self) -> List[str]:
        return sorted(self._variants)

    def extract(self, path: str, content: bytes, language: str) -> FileRecord:
        """Return the FileRecord for ``path``; malformed input never raises."""
        extractor = self._variants.get(language.lower())
        if extractor is None:
            return FileRecord.failed(path, language, f"unsupported language '{language}'")

        try:
            parsed = extractor.parse(path, content, language.lower())
        except ExtractionFailure as exc:
            logger.warning("Extraction failed for %s: %s", path, exc)
            return FileRecord.failed(path, language, str(exc))
        except Exception as exc:
            logger.warning("Parser raised for %s: %s", path, exc)
            logger.debug("Parser traceback for %s", path, exc_info=True)
            return FileRecord.failed(path, language, f"{type(exc).__name__}: {exc}")

        return _to_record(path, language, parsed)


def _to_record(path: str, language: str, parsed: ParsedSymbols) -> FileRecord:
    exports = sorted(parsed.exports, key=_export_order)
    imports = sorted(parsed.imports, key=_import_order)
    if parsed.partial:
        logger.debug("Partial parse for %s", path)
        return FileRecord(
            path=path,
            language=language,
            exports=tuple(exports),
            imports=tuple(imports),
            status=ParseStatus.PARTIAL,
            reason=_PARTIAL_REASON,
        )
    return FileRecord(path=path, language=language, exports=tuple(exports), imports=tuple(imports))


def _export_order(export: ExportDecl):
    return (export.span.start_line, export.name)


def _import_order(decl: ImportDecl):
    return (decl.span.start_line, decl.specifier, decl.names)


def default_registry(include_plugins: bool = True) -> ExtractorRegistry:
    """Registry holding the built-in variants plus installed plugins."""
    registry = ExtractorRegistry()
    for factory in _BUILTIN_FACTORIES.values():
        registry.register(factory())
    if include_plugins:
        for entry in _iter_entry_points():
            try:
                loaded = entry.load()
            except Exception as exc:
                raise RuntimeError(f"Failed to load extractor entry point '{entry.name}': {exc}") from exc
            extractor = loaded() if isinstance(loaded, type) else loaded
            registry.register(extractor)
    return registry


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


_default: Optional[ExtractorRegistry] = None


def extract(path: str, content: bytes, language: str) -> FileRecord:
    """Extract with the lazily built default registry."""
    global _default
    if _default is None:
        _default = default_registry()
    return _default.extract(path, content, language)


__all__ = [
    "ExtractorRegistry",
    "ParsedSymbols",
    "PythonExtractor",
    "RustExtractor",
    "SymbolExtractor",
    "TypeScriptExtractor",
    "default_registry",
    "extract",
]
