"""Rust symbol extraction."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from tree_sitter import Node

from ..models import ExportDecl, ImportDecl, SourceSpan
from ._tree_sitter import child_of_type, first_line, header_text, node_text, parse_source, span_of
from .base import ParsedSymbols
from .comments import jsdoc_above, line_comments_above

_ITEM_KINDS = {
    "function_item": "function",
    "function_signature_item": "function",
    "struct_item": "struct",
    "enum_item": "enum",
    "union_item": "union",
    "trait_item": "trait",
    "type_item": "type",
    "const_item": "constant",
    "static_item": "static",
    "mod_item": "module",
}

_HEADER_KINDS = {"function", "struct", "enum", "union", "trait", "module"}
_PATH_NODES = {"identifier", "crate", "self", "super", "metavariable", "scoped_identifier"}

# (specifier, name, alias); name is None for a glob import
_UseLeaf = Tuple[str, Optional[str], Optional[str]]


class RustExtractor:
    """Exports are ``pub`` items at the top of the file; imports are ``use`` trees."""

    languages = ("rust",)

    def parse(self, path: str, source: bytes, language: str) -> ParsedSymbols:
        tree = parse_source("rust", source)
        root = tree.root_node
        lines = source.decode("utf-8", errors="replace").splitlines()

        exports: List[ExportDecl] = []
        imports: List[ImportDecl] = []
        for child in root.named_children:
            if child.type == "use_declaration":
                leaves = self._use_leaves(child, source)
                span = span_of(child)
                imports.extend(self._group_imports(leaves, span))
                if self._is_public(child, source):
                    exports.extend(self._reexports(leaves, span))
            elif child.type == "macro_definition":
                exported = self._exported_macro(child, source, lines)
                if exported is not None:
                    exports.append(exported)
            elif child.type in _ITEM_KINDS and self._is_public(child, source):
                exported = self._item(child, source, lines)
                if exported is not None:
                    exports.append(exported)

        return ParsedSymbols(exports=exports, imports=imports, partial=root.has_error)

    @staticmethod
    def _is_public(node: Node, source: bytes) -> bool:
        visibility = child_of_type(node, "visibility_modifier")
        return visibility is not None and node_text(visibility, source).startswith("pub")

    @staticmethod
    def _doc(node: Node, lines: List[str]) -> Optional[str]:
        row = node.start_point[0]
        return line_comments_above(lines, row) or jsdoc_above(lines, row)

    def _item(self, node: Node, source: bytes, lines: List[str]) -> Optional[ExportDecl]:
        name = node_text(node.child_by_field_name("name"), source)
        if not name:
            return None
        kind = _ITEM_KINDS[node.type]
        if kind in _HEADER_KINDS:
            signature = header_text(node, source, node.child_by_field_name("body"))
        else:
            signature = first_line(node, source).rstrip(";")
        return ExportDecl(
            name=name,
            kind=kind,
            span=span_of(node),
            signature=signature,
            doc=self._doc(node, lines),
        )

    def _exported_macro(self, node: Node, source: bytes, lines: List[str]) -> Optional[ExportDecl]:
        attribute = node.prev_named_sibling
        if attribute is None or attribute.type != "attribute_item":
            return None
        if "macro_export" not in node_text(attribute, source):
            return None
        name = node_text(node.child_by_field_name("name"), source)
        if not name:
            return None
        return ExportDecl(
            name=name,
            kind="macro",
            span=span_of(node),
            signature=f"macro_rules! {name}",
            doc=self._doc(node, lines),
        )

    # ------------------------------------------------------------------
    # use trees

    def _use_leaves(self, node: Node, source: bytes) -> List[_UseLeaf]:
        argument = node.child_by_field_name("argument")
        if argument is None:
            return []
        leaves: List[_UseLeaf] = []
        self._walk(argument, [], source, leaves)
        return leaves

    def _walk(self, node: Node, prefix: List[str], source: bytes, leaves: List[_UseLeaf]) -> None:
        if node.type in _PATH_NODES:
            self._leaf(prefix + _segments(node, source), None, leaves)
        elif node.type == "use_as_clause":
            path = node.child_by_field_name("path")
            alias = node.child_by_field_name("alias")
            if path is not None:
                self._leaf(prefix + _segments(path, source), node_text(alias, source) or None, leaves)
        elif node.type == "scoped_use_list":
            path = node.child_by_field_name("path")
            nested = prefix + (_segments(path, source) if path is not None else [])
            items = node.child_by_field_name("list")
            if items is not None:
                self._walk(items, nested, source, leaves)
        elif node.type == "use_list":
            for item in node.named_children:
                self._walk(item, prefix, source, leaves)
        elif node.type == "use_wildcard":
            path = node.named_children[0] if node.named_children else None
            segments = prefix + (_segments(path, source) if path is not None else [])
            if segments:
                leaves.append(("::".join(segments), None, None))

    @staticmethod
    def _leaf(segments: List[str], alias: Optional[str], leaves: List[_UseLeaf]) -> None:
        if not segments:
            return
        if segments[-1] == "self" and len(segments) > 1:
            # `use a::b::{self}` names the module a::b itself
            module = segments[:-1]
            leaves.append(("::".join(module), None, alias or module[-1]))
            return
        if len(segments) == 1:
            leaves.append((segments[0], None, alias or segments[0]))
            return
        leaves.append(("::".join(segments[:-1]), segments[-1], alias))

    @staticmethod
    def _group_imports(leaves: List[_UseLeaf], span: SourceSpan) -> List[ImportDecl]:
        grouped: Dict[str, Optional[List[str]]] = {}
        for specifier, name, _ in leaves:
            if specifier not in grouped:
                grouped[specifier] = []
            names = grouped[specifier]
            if names is None:
                continue
            if name is None:
                grouped[specifier] = None
            elif name not in names:
                names.append(name)
        return [
            ImportDecl(specifier=specifier, span=span, names=tuple(names or ()))
            for specifier, names in grouped.items()
        ]

    @staticmethod
    def _reexports(leaves: List[_UseLeaf], span: SourceSpan) -> List[ExportDecl]:
        result: List[ExportDecl] = []
        for specifier, name, alias in leaves:
            public = alias or name
            if public is None or public == "*":
                continue
            result.append(ExportDecl(name=public, kind="reexport", span=span, signature=f"pub use {specifier}"))
        return result


def _segments(node: Node, source: bytes) -> List[str]:
    text = "".join(node_text(node, source).split())
    return [segment for segment in text.split("::") if segment]


__all__ = ["RustExtractor"]
