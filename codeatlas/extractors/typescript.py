"""TypeScript, TSX and JavaScript symbol extraction."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from tree_sitter import Node

from ..models import ExportDecl, ImportDecl
from ._tree_sitter import (
    child_of_type,
    first_line,
    header_text,
    iter_descendants,
    node_text,
    parse_source,
    span_of,
    strip_quotes,
)
from .base import ParsedSymbols
from .comments import jsdoc_above

_GRAMMARS = {
    "typescript": "typescript",
    "tsx": "tsx",
    "javascript": "javascript",
}

_DECLARATION_KINDS = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "function_signature": "function",
    "function_expression": "function",
    "function": "function",
    "arrow_function": "function",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "class": "class",
    "interface_declaration": "interface",
    "type_alias_declaration": "type",
    "enum_declaration": "enum",
    "internal_module": "namespace",
    "module": "namespace",
}

_FUNCTION_VALUES = {"arrow_function", "function_expression", "function", "generator_function"}

# (name, kind, signature)
_Declared = Tuple[str, str, Optional[str]]


class TypeScriptExtractor:
    """Handles ``export``/``import`` statements plus ``require`` calls."""

    languages = ("typescript", "tsx", "javascript")

    def parse(self, path: str, source: bytes, language: str) -> ParsedSymbols:
        grammar = _GRAMMARS.get(language, "typescript")
        if language == "typescript" and path.endswith(".tsx"):
            grammar = "tsx"
        tree = parse_source(grammar, source)
        root = tree.root_node
        lines = source.decode("utf-8", errors="replace").splitlines()

        local: Dict[str, _Declared] = {}
        imported_locals: Dict[str, str] = {}
        for child in root.named_children:
            if child.type == "import_statement":
                imported_locals.update(self._imported_locals(child, source))
                continue
            target: Optional[Node] = child
            if child.type == "export_statement":
                target = child.child_by_field_name("declaration")
            if target is not None:
                for declared in self._declared(target, source):
                    local.setdefault(declared[0], declared)

        exports: List[ExportDecl] = []
        imports: List[ImportDecl] = []
        for child in root.named_children:
            if child.type == "export_statement":
                self._export_statement(child, source, lines, local, imported_locals, exports, imports)
            elif child.type == "import_statement":
                imported = self._import_statement(child, source)
                if imported is not None:
                    imports.append(imported)
            elif child.type == "expression_statement":
                self._commonjs_exports(child, source, lines, local, exports)
        imports.extend(self._call_imports(root, source))

        return ParsedSymbols(exports=exports, imports=imports, partial=root.has_error)

    # ------------------------------------------------------------------
    # Exports

    def _export_statement(
        self,
        node: Node,
        source: bytes,
        lines: Sequence[str],
        local: Dict[str, _Declared],
        imported_locals: Dict[str, str],
        exports: List[ExportDecl],
        imports: List[ImportDecl],
    ) -> None:
        span = span_of(node)
        doc = jsdoc_above(lines, node.start_point[0])
        is_default = child_of_type(node, "default") is not None
        source_node = node.child_by_field_name("source")

        if source_node is not None:
            specifier = strip_quotes(node_text(source_node, source))
            clause = child_of_type(node, "export_clause")
            if clause is not None:
                pairs = self._specifier_pairs(clause, source)
                imports.append(
                    ImportDecl(
                        specifier=specifier,
                        span=span,
                        names=tuple(dict.fromkeys(local_name for local_name, _ in pairs)),
                    )
                )
                for _, public in pairs:
                    exports.append(ExportDecl(name=public, kind="reexport", span=span, doc=doc))
                return
            imports.append(ImportDecl(specifier=specifier, span=span))
            namespace = child_of_type(node, "namespace_export")
            if namespace is not None:
                alias = [child for child in namespace.named_children]
                if alias:
                    exports.append(
                        ExportDecl(
                            name=strip_quotes(node_text(alias[-1], source)),
                            kind="namespace",
                            span=span,
                            doc=doc,
                        )
                    )
            return

        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            for name, kind, signature in self._declared(declaration, source):
                exports.append(
                    ExportDecl(
                        name="default" if is_default else name,
                        kind=kind,
                        span=span,
                        signature=signature,
                        doc=doc,
                    )
                )
            return

        if is_default:
            value = node.child_by_field_name("value")
            kind = "value"
            signature = None
            if value is not None:
                if value.type == "identifier" and node_text(value, source) in local:
                    _, kind, signature = local[node_text(value, source)]
                else:
                    kind = _DECLARATION_KINDS.get(value.type, "value")
                    signature = self._value_signature(value, source)
            exports.append(
                ExportDecl(name="default", kind=kind, span=span, signature=signature, doc=doc)
            )
            return

        clause = child_of_type(node, "export_clause")
        if clause is None:
            return
        for local_name, public in self._specifier_pairs(clause, source):
            if local_name in local:
                _, kind, signature = local[local_name]
            elif local_name in imported_locals:
                kind, signature = "reexport", None
            else:
                kind, signature = "binding", None
            exports.append(
                ExportDecl(name=public, kind=kind, span=span, signature=signature, doc=doc)
            )

    def _commonjs_exports(
        self,
        node: Node,
        source: bytes,
        lines: Sequence[str],
        local: Dict[str, _Declared],
        exports: List[ExportDecl],
    ) -> None:
        """``module.exports = ...``, ``exports.x = ...`` and ``module.exports.x = ...``."""
        assignment = node.named_children[0] if node.named_children else None
        if assignment is None or assignment.type != "assignment_expression":
            return
        target = _member_path(assignment.child_by_field_name("left"), source)
        value = assignment.child_by_field_name("right")
        if target is None or value is None:
            return
        span = span_of(node)
        doc = jsdoc_above(lines, node.start_point[0])

        if target == ["module", "exports"]:
            if value.type != "object":
                kind, signature = self._value_kind(value, source, local)
                exports.append(ExportDecl(name="default", kind=kind, span=span, signature=signature, doc=doc))
                return
            for entry in value.named_children:
                if entry.type == "shorthand_property_identifier":
                    name = node_text(entry, source)
                    kind, signature = local[name][1:] if name in local else ("binding", None)
                elif entry.type == "pair":
                    name = strip_quotes(node_text(entry.child_by_field_name("key"), source))
                    kind, signature = self._value_kind(entry.child_by_field_name("value"), source, local)
                elif entry.type == "method_definition":
                    name = node_text(entry.child_by_field_name("name"), source)
                    kind, signature = "function", header_text(entry, source, entry.child_by_field_name("body"))
                else:
                    continue
                if name:
                    exports.append(
                        ExportDecl(
                            name=name,
                            kind=kind,
                            span=span_of(entry),
                            signature=signature,
                            doc=jsdoc_above(lines, entry.start_point[0]),
                        )
                    )
            return

        if target[:-1] in (["exports"], ["module", "exports"]):
            kind, signature = self._value_kind(value, source, local)
            exports.append(ExportDecl(name=target[-1], kind=kind, span=span, signature=signature, doc=doc))

    def _value_kind(
        self, value: Optional[Node], source: bytes, local: Dict[str, _Declared]
    ) -> Tuple[str, Optional[str]]:
        if value is None:
            return "value", None
        if value.type == "identifier" and node_text(value, source) in local:
            _, kind, signature = local[node_text(value, source)]
            return kind, signature
        return _DECLARATION_KINDS.get(value.type, "value"), self._value_signature(value, source)

    def _declared(self, node: Node, source: bytes) -> List[_Declared]:
        if node.type == "ambient_declaration":
            result: List[_Declared] = []
            for child in node.named_children:
                result.extend(self._declared(child, source))
            return result

        if node.type in {"lexical_declaration", "variable_declaration"}:
            keyword = node.children[0].type if node.children else ""
            base_kind = "constant" if keyword == "const" else "variable"
            result = []
            for declarator in node.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                if name_node is None or name_node.type != "identifier":
                    continue
                value = declarator.child_by_field_name("value")
                if value is not None and value.type in _FUNCTION_VALUES:
                    signature = header_text(declarator, source, value.child_by_field_name("body"))
                    result.append((node_text(name_node, source), "function", signature))
                else:
                    result.append((node_text(name_node, source), base_kind, first_line(declarator, source)))
            return result

        kind = _DECLARATION_KINDS.get(node.type)
        if kind is None:
            return []
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return []
        name = strip_quotes(node_text(name_node, source))
        if kind in {"function", "class"}:
            signature = header_text(node, source, node.child_by_field_name("body"))
        else:
            signature = first_line(node, source)
        return [(name, kind, signature)]

    @staticmethod
    def _value_signature(value: Node, source: bytes) -> Optional[str]:
        if value.type in _FUNCTION_VALUES or value.type == "class":
            return header_text(value, source, value.child_by_field_name("body"))
        return first_line(value, source) or None

    @staticmethod
    def _specifier_pairs(clause: Node, source: bytes) -> List[Tuple[str, str]]:
        pairs: List[Tuple[str, str]] = []
        for specifier in clause.named_children:
            if specifier.type != "export_specifier":
                continue
            name = strip_quotes(node_text(specifier.child_by_field_name("name"), source))
            alias_node = specifier.child_by_field_name("alias")
            public = strip_quotes(node_text(alias_node, source)) if alias_node is not None else name
            if name:
                pairs.append((name, public))
        return pairs

    # ------------------------------------------------------------------
    # Imports

    @staticmethod
    def _import_source(node: Node, source: bytes) -> Optional[str]:
        source_node = node.child_by_field_name("source")
        if source_node is None:
            require_clause = child_of_type(node, "import_require_clause")
            if require_clause is not None:
                source_node = require_clause.child_by_field_name("source")
        if source_node is None:
            return None
        return strip_quotes(node_text(source_node, source))

    def _import_statement(self, node: Node, source: bytes) -> Optional[ImportDecl]:
        specifier = self._import_source(node, source)
        if not specifier:
            return None
        clause = child_of_type(node, "import_clause")
        if clause is None:
            return ImportDecl(specifier=specifier, span=span_of(node))

        names: List[str] = []
        whole_module = False
        for part in clause.named_children:
            if part.type == "identifier":
                names.append("default")
            elif part.type == "namespace_import":
                whole_module = True
            elif part.type == "named_imports":
                for item in part.named_children:
                    if item.type != "import_specifier":
                        continue
                    name = strip_quotes(node_text(item.child_by_field_name("name"), source))
                    if name:
                        names.append(name)
        if whole_module:
            names = []
        return ImportDecl(specifier=specifier, span=span_of(node), names=tuple(dict.fromkeys(names)))

    def _imported_locals(self, node: Node, source: bytes) -> Dict[str, str]:
        specifier = self._import_source(node, source) or ""
        bound: Dict[str, str] = {}
        clause = child_of_type(node, "import_clause")
        if clause is None:
            return bound
        for part in clause.named_children:
            if part.type == "identifier":
                bound[node_text(part, source)] = specifier
            elif part.type == "namespace_import":
                for item in part.named_children:
                    if item.type == "identifier":
                        bound[node_text(item, source)] = specifier
            elif part.type == "named_imports":
                for item in part.named_children:
                    if item.type != "import_specifier":
                        continue
                    alias = item.child_by_field_name("alias") or item.child_by_field_name("name")
                    bound[node_text(alias, source)] = specifier
        return bound

    @staticmethod
    def _call_imports(root: Node, source: bytes) -> List[ImportDecl]:
        """``require('x')`` and literal ``import('x')`` calls anywhere in the file."""
        result: List[ImportDecl] = []
        for node in iter_descendants(root):
            if node.type != "call_expression":
                continue
            function = node.child_by_field_name("function")
            if function is None:
                continue
            is_require = function.type == "identifier" and node_text(function, source) == "require"
            if not is_require and function.type != "import":
                continue
            arguments = node.child_by_field_name("arguments")
            if arguments is None or not arguments.named_children:
                continue
            argument = arguments.named_children[0]
            if argument.type not in {"string", "template_string"}:
                continue
            specifier = strip_quotes(node_text(argument, source))
            if not specifier or "${" in specifier:
                continue

            names: List[str] = []
            parent = node.parent
            if is_require and parent is not None and parent.type == "variable_declarator":
                pattern = parent.child_by_field_name("name")
                if pattern is not None and pattern.type == "object_pattern":
                    for item in pattern.named_children:
                        if item.type == "shorthand_property_identifier_pattern":
                            names.append(node_text(item, source))
                        elif item.type == "pair_pattern":
                            key = item.child_by_field_name("key")
                            names.append(strip_quotes(node_text(key, source)))
            result.append(
                ImportDecl(specifier=specifier, span=span_of(node), names=tuple(dict.fromkeys(names)))
            )
        return result


def _member_path(node: Optional[Node], source: bytes) -> Optional[List[str]]:
    """``module.exports.x`` as ``["module", "exports", "x"]``; None for computed members."""
    if node is None:
        return None
    if node.type == "identifier":
        return [node_text(node, source)]
    if node.type != "member_expression":
        return None
    head = _member_path(node.child_by_field_name("object"), source)
    prop = node.child_by_field_name("property")
    if head is None or prop is None or prop.type != "property_identifier":
        return None
    return head + [node_text(prop, source)]


__all__ = ["TypeScriptExtractor"]
