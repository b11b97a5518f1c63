"""Python symbol extraction."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from tree_sitter import Node

from ..models import ExportDecl, ImportDecl, SourceSpan
from ._tree_sitter import (
    child_of_type,
    header_text,
    iter_descendants,
    node_text,
    parse_source,
    span_of,
    strip_quotes,
)
from .base import ParsedSymbols
from .comments import clean_docstring

_CONSTANT_NAME = re.compile(r"^[A-Z][A-Z0-9_]*$")
_COMMAND_DECORATOR = re.compile(r"(?:^|\.)(?:command|group)\s*(?:\(|$)")


class PythonExtractor:
    """Exports are public top-level definitions, narrowed by ``__all__``."""

    languages = ("python",)

    def parse(self, path: str, source: bytes, language: str) -> ParsedSymbols:
        tree = parse_source("python", source)
        root = tree.root_node

        exports: List[ExportDecl] = []
        imports: List[ImportDecl] = []
        bound_by_import: Dict[str, SourceSpan] = {}
        declared_all: Optional[List[str]] = None

        for node in iter_descendants(root):
            if node.type == "import_statement":
                imports.extend(self._plain_imports(node, source))
            elif node.type == "import_from_statement":
                imports.append(self._from_import(node, source))

        for child in root.named_children:
            if child.type in {"import_statement", "import_from_statement"}:
                bound_by_import.update(self._bound_names(child, source))
                continue
            if child.type == "expression_statement":
                names = self._dunder_all(child, source)
                if names is not None:
                    declared_all = (declared_all or []) + names
                    continue
            exports.extend(self._exports_from(child, source))

        if declared_all is not None:
            exports = self._apply_dunder_all(exports, declared_all, bound_by_import)

        return ParsedSymbols(exports=exports, imports=imports, partial=root.has_error)

    # ------------------------------------------------------------------
    # Exports

    def _exports_from(self, node: Node, source: bytes) -> List[ExportDecl]:
        decorators: List[str] = []
        target = node
        if node.type == "decorated_definition":
            decorators = [
                node_text(child, source).lstrip("@").strip()
                for child in node.named_children
                if child.type == "decorator"
            ]
            definition = node.child_by_field_name("definition")
            if definition is None:
                return []
            target = definition

        if target.type in {"function_definition", "class_definition"}:
            name = node_text(target.child_by_field_name("name"), source)
            if not name or name.startswith("_"):
                return []
            kind = "class" if target.type == "class_definition" else "function"
            if kind == "function" and any(_COMMAND_DECORATOR.search(item) for item in decorators):
                kind = "command"
            body = target.child_by_field_name("body")
            return [
                ExportDecl(
                    name=name,
                    kind=kind,
                    span=span_of(node),
                    signature=header_text(target, source, body),
                    doc=self._docstring(body, source),
                )
            ]

        if target.type == "expression_statement":
            assignment = target.named_children[0] if target.named_children else None
            if assignment is None or assignment.type != "assignment":
                return []
            left = assignment.child_by_field_name("left")
            if left is None or left.type != "identifier":
                return []
            name = node_text(left, source)
            if not _CONSTANT_NAME.match(name):
                return []
            return [
                ExportDecl(
                    name=name,
                    kind="constant",
                    span=span_of(target),
                    signature=" ".join(node_text(assignment, source).split())[:200],
                )
            ]
        return []

    @staticmethod
    def _docstring(body: Optional[Node], source: bytes) -> Optional[str]:
        if body is None:
            return None
        for statement in body.named_children:
            if statement.type == "comment":
                continue
            if statement.type != "expression_statement" or not statement.named_children:
                return None
            literal = statement.named_children[0]
            if literal.type != "string":
                return None
            return clean_docstring(node_text(literal, source))
        return None

    def _dunder_all(self, node: Node, source: bytes) -> Optional[List[str]]:
        statement = node.named_children[0] if node.named_children else None
        if statement is None or statement.type not in {"assignment", "augmented_assignment"}:
            return None
        left = statement.child_by_field_name("left")
        if left is None or node_text(left, source) != "__all__":
            return None
        right = statement.child_by_field_name("right")
        if right is None or right.type not in {"list", "tuple"}:
            return None
        return [
            strip_quotes(node_text(item, source))
            for item in right.named_children
            if item.type == "string"
        ]

    @staticmethod
    def _apply_dunder_all(
        exports: List[ExportDecl],
        declared: List[str],
        bound_by_import: Dict[str, SourceSpan],
    ) -> List[ExportDecl]:
        by_name = {export.name: export for export in exports}
        result: List[ExportDecl] = []
        seen = set()
        for name in declared:
            if name in seen:
                continue
            seen.add(name)
            if name in by_name:
                result.append(by_name[name])
            elif name in bound_by_import:
                result.append(ExportDecl(name=name, kind="reexport", span=bound_by_import[name]))
        return result

    # ------------------------------------------------------------------
    # Imports

    @staticmethod
    def _plain_imports(node: Node, source: bytes) -> List[ImportDecl]:
        result: List[ImportDecl] = []
        for item in node.children_by_field_name("name"):
            target = item.child_by_field_name("name") if item.type == "aliased_import" else item
            specifier = node_text(target, source)
            if specifier:
                result.append(ImportDecl(specifier=specifier, span=span_of(node)))
        return result

    @staticmethod
    def _from_import(node: Node, source: bytes) -> ImportDecl:
        module = node.child_by_field_name("module_name")
        specifier = "".join(node_text(module, source).split())
        names: List[str] = []
        if child_of_type(node, "wildcard_import") is None:
            for item in node.children_by_field_name("name"):
                target = item.child_by_field_name("name") if item.type == "aliased_import" else item
                name = node_text(target, source)
                if name and name not in names:
                    names.append(name)
        return ImportDecl(specifier=specifier, span=span_of(node), names=tuple(names))

    @staticmethod
    def _bound_names(node: Node, source: bytes) -> List[Tuple[str, SourceSpan]]:
        bound: List[Tuple[str, SourceSpan]] = []
        span = span_of(node)
        for item in node.children_by_field_name("name"):
            if item.type == "aliased_import":
                alias = item.child_by_field_name("alias")
                bound.append((node_text(alias, source), span))
            elif node.type == "import_statement":
                bound.append((node_text(item, source).split(".")[0], span))
            else:
                bound.append((node_text(item, source), span))
        return bound


__all__ = ["PythonExtractor"]
