"""Import specifier resolution against the set of discovered files.

Resolution only looks at the specifier, the importing file's path and the
complete set of discovered paths, so results do not depend on the order in
which files were extracted. Three dialects are supported:

* JS/TS: ``./`` and ``../`` relative paths, root-anchored ``/x`` paths,
  configured aliases (``@/`` -> ``src/``) and bare specifiers.
* Python: leading-dot relative imports and dotted absolute imports.
* Rust: ``crate::``, ``self::`` and ``super::`` paths plus bare paths.

Candidates are probed as exact path, then path + extension (configured
order), then path + directory index file. The first existing candidate wins.
"""

from __future__ import annotations

import posixpath
import threading
from typing import Dict, Iterable, List, Optional, Tuple

from .config import ResolutionConfig, language_family
from .logging import get_logger
from .models import (
    FileRecord,
    ImportDecl,
    ResolutionAmbiguity,
    ResolutionResult,
)

logger = get_logger("resolver")

_RUST_CRATE_ROOTS = ("lib.rs", "main.rs")
_RUST_MODULE_FILES = ("mod.rs", "lib.rs", "main.rs")


class ModuleResolver:
    """Maps (specifier, importer) pairs to module ids."""

    def __init__(self, paths: Iterable[str], config: Optional[ResolutionConfig] = None) -> None:
        self.config = config or ResolutionConfig()
        self._paths = frozenset(_clean(path) for path in paths)
        self._index_owners: Dict[str, frozenset] = {}
        for family, names in self.config.index_files.items():
            for name in names:
                owners = self._index_owners.get(name, frozenset())
                self._index_owners[name] = owners | {_ecosystem(family)}
        self._directory_owners: Dict[str, frozenset] = {}
        for path in self._paths:
            directory, name = posixpath.split(path)
            if name in self._index_owners:
                owners = self._directory_owners.get(directory, frozenset())
                self._directory_owners[directory] = owners | self._index_owners[name]
        self._aliases = sorted(self.config.aliases.items(), key=lambda item: (-len(item[0]), item[0]))
        self._ambiguities: Dict[Tuple[str, str], ResolutionAmbiguity] = {}
        self._lock = threading.Lock()

    @property
    def paths(self) -> frozenset:
        return self._paths

    @property
    def ambiguities(self) -> Tuple[ResolutionAmbiguity, ...]:
        with self._lock:
            items = list(self._ambiguities.values())
        return tuple(sorted(items, key=lambda item: (item.importer, item.specifier)))

    def module_id(self, path: str) -> str:
        """Normalized module id: index files collapse onto their directory.

        A directory holding index files of different ecosystems (``__init__.py``
        next to ``index.js``) is not one logical module, so those files keep
        their own paths as ids.
        """
        path = _clean(path)
        directory, name = posixpath.split(path)
        owners = self._index_owners.get(name)
        if owners is None:
            return path
        if len(owners | self._directory_owners.get(directory, frozenset())) > 1:
            return path
        return directory or "."

    # ------------------------------------------------------------------
    # Resolution

    def resolve(self, specifier: str, importer: str, language: str) -> ResolutionResult:
        importer = _clean(importer)
        family = language_family(language)
        if family in {"typescript", "javascript"}:
            return self._resolve_js(specifier, importer, family)
        if family == "python":
            return self._resolve_python(specifier, importer)
        if family == "rust":
            return self._resolve_rust(specifier, importer)
        return self._resolve_bare(specifier, importer, family, specifier)

    def resolve_record(self, record: FileRecord) -> FileRecord:
        """Return ``record`` with every ImportDecl annotated.

        Python and Rust imports of a name that is itself a module
        (``from pkg import sub``, ``use crate::a::{sub}``) are split into a
        whole-module import of that submodule.
        """
        family = language_family(record.language)
        resolved: List[ImportDecl] = []
        for decl in record.imports:
            result = self.resolve(decl.specifier, record.path, record.language)
            if decl.names and family in {"python", "rust"}:
                resolved.extend(self._expand_submodules(decl, result, record, family))
            else:
                resolved.append(decl.with_resolution(result))

        return FileRecord(
            path=record.path,
            language=record.language,
            exports=record.exports,
            imports=tuple(resolved),
            status=record.status,
            reason=record.reason,
        )

    def _expand_submodules(
        self,
        decl: ImportDecl,
        result: ResolutionResult,
        record: FileRecord,
        family: str,
    ) -> List[ImportDecl]:
        separator = "::" if family == "rust" else "."
        remaining: List[str] = []
        split: List[ImportDecl] = []
        for name in decl.names:
            if family == "python" and decl.specifier.endswith("."):
                child_spec = decl.specifier + name
            else:
                child_spec = f"{decl.specifier}{separator}{name}"
            child = self.resolve(child_spec, record.path, record.language)
            if child.is_resolved and (not result.is_resolved or child.target != result.target):
                split.append(ImportDecl(specifier=child_spec, span=decl.span, resolution=child))
            else:
                remaining.append(name)

        expanded: List[ImportDecl] = []
        if remaining or not split:
            expanded.append(
                ImportDecl(
                    specifier=decl.specifier,
                    span=decl.span,
                    names=tuple(remaining),
                    resolution=result,
                )
            )
        expanded.extend(split)
        return expanded

    # JS / TS ------------------------------------------------------------

    def _resolve_js(self, specifier: str, importer: str, family: str) -> ResolutionResult:
        for prefix, replacement in self._aliases:
            if specifier.startswith(prefix):
                base = _join(replacement, specifier[len(prefix) :])
                return self._result(base, importer, family, specifier)

        if specifier in {".", ".."} or specifier.startswith(("./", "../")):
            base = _join(posixpath.dirname(importer), specifier)
            return self._result(base, importer, family, specifier)
        if specifier.startswith("/"):
            return self._result(specifier.lstrip("/"), importer, family, specifier)
        return self._resolve_bare(specifier, importer, family, specifier)

    # Python -------------------------------------------------------------

    def _resolve_python(self, specifier: str, importer: str) -> ResolutionResult:
        if not specifier.startswith("."):
            return self._resolve_bare(specifier.replace(".", "/"), importer, "python", specifier)

        dots = len(specifier) - len(specifier.lstrip("."))
        package = posixpath.dirname(importer)
        for _ in range(dots - 1):
            if package in {"", "."}:
                return ResolutionResult.unresolved(specifier)
            package = posixpath.dirname(package)
        remainder = specifier[dots:].replace(".", "/")
        base = _join(package, remainder) if remainder else package
        return self._result(base, importer, "python", specifier)

    # Rust ---------------------------------------------------------------

    def _resolve_rust(self, specifier: str, importer: str) -> ResolutionResult:
        segments = [segment for segment in specifier.split("::") if segment]
        if not segments:
            return ResolutionResult.external(specifier)

        head = segments[0]
        if head == "crate":
            anchor = self._rust_crate_root(importer)
            if anchor is None:
                return ResolutionResult.unresolved(specifier)
            return self._rust_path(anchor, segments[1:], importer, specifier)
        if head in {"self", "super"}:
            directory: Optional[str] = self._rust_module_dir(importer)
            rest = segments[1:] if head == "self" else segments
            while rest and rest[0] == "super":
                if directory is None or directory == "":
                    return ResolutionResult.unresolved(specifier)
                directory = posixpath.dirname(directory)
                rest = rest[1:]
            return self._rust_path(directory or "", rest, importer, specifier)
        return self._resolve_bare("/".join(segments), importer, "rust", specifier)

    def _rust_crate_root(self, importer: str) -> Optional[str]:
        directory = posixpath.dirname(importer)
        while True:
            for name in _RUST_CRATE_ROOTS:
                if _join(directory, name) in self._paths:
                    return directory
            if not directory:
                return None
            directory = posixpath.dirname(directory)

    @staticmethod
    def _rust_module_dir(importer: str) -> str:
        directory, name = posixpath.split(importer)
        if name in _RUST_MODULE_FILES:
            return directory
        return _join(directory, name[: -len(".rs")] if name.endswith(".rs") else name)

    def _rust_path(
        self, directory: str, rest: List[str], importer: str, specifier: str
    ) -> ResolutionResult:
        # Trailing segments may name items (`Enum::Variant`); keep the longest module prefix.
        while rest:
            found = self._probe(_join(directory, "/".join(rest)), importer, "rust", specifier)
            if found is not None:
                return ResolutionResult.resolved(self.module_id(found), specifier)
            rest = rest[:-1]

        candidates = [_join(directory, name) for name in _RUST_MODULE_FILES]
        if directory:
            candidates.append(directory + ".rs")
        found = self._first_match(candidates, importer, specifier)
        if found is None:
            return ResolutionResult.unresolved(specifier)
        return ResolutionResult.resolved(self.module_id(found), specifier)

    # Shared -------------------------------------------------------------

    def _resolve_bare(self, base: str, importer: str, family: str, specifier: str) -> ResolutionResult:
        for root in self.config.source_roots:
            found = self._probe(_join(root, base), importer, family, specifier)
            if found is not None:
                return ResolutionResult.resolved(self.module_id(found), specifier)
        return ResolutionResult.external(specifier)

    def _result(self, base: Optional[str], importer: str, family: str, specifier: str) -> ResolutionResult:
        """Resolve a specifier known to be internal; a miss is ``Unresolved``."""
        found = self._probe(base, importer, family, specifier)
        if found is not None:
            return ResolutionResult.resolved(self.module_id(found), specifier)
        return ResolutionResult.unresolved(specifier)

    def _probe(self, base: Optional[str], importer: str, family: str, specifier: str) -> Optional[str]:
        if base is None:
            return None
        candidates: List[str] = []
        if base:
            candidates.append(base)
            candidates.extend(base + ext for ext in self.config.extensions_for(family))
        candidates.extend(_join(base, name) for name in self.config.index_files_for(family))
        if family == "typescript" and base.endswith((".js", ".jsx")):
            # ESM-style `./foo.js` written against foo.ts
            stem = base.rsplit(".", 1)[0]
            candidates.extend(stem + ext for ext in (".ts", ".tsx"))
        return self._first_match(candidates, importer, specifier)

    def _first_match(self, candidates: List[str], importer: str, specifier: str) -> Optional[str]:
        matches = [candidate for candidate in dict.fromkeys(candidates) if candidate in self._paths]
        if not matches:
            return None
        if len(matches) > 1:
            self._record_ambiguity(importer, specifier, matches)
        return matches[0]

    def _record_ambiguity(self, importer: str, specifier: str, matches: List[str]) -> None:
        ambiguity = ResolutionAmbiguity(
            importer=importer,
            specifier=specifier,
            candidates=tuple(matches),
            chosen=matches[0],
        )
        with self._lock:
            if (importer, specifier) in self._ambiguities:
                return
            self._ambiguities[(importer, specifier)] = ambiguity
        logger.debug(
            "Ambiguous import %r in %s: %s; chose %s",
            specifier,
            importer,
            ", ".join(matches),
            matches[0],
        )


def _ecosystem(family: str) -> str:
    return "javascript" if family in {"typescript", "javascript"} else family


def _clean(path: str) -> str:
    cleaned = posixpath.normpath(path.replace("\\", "/")).lstrip("/")
    return "" if cleaned == "." else cleaned


def _join(directory: str, relative: str) -> Optional[str]:
    """Join and normalize; ``None`` when the result escapes the root."""
    joined = posixpath.normpath(posixpath.join(directory or ".", relative or "."))
    if joined == ".":
        return ""
    if joined == ".." or joined.startswith("../") or joined.startswith("/"):
        return None
    return joined


__all__ = ["ModuleResolver"]
