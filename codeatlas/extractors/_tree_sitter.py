"""Tree-sitter parser access and node helpers shared by extractor variants."""

from __future__ import annotations

import threading
from typing import Dict, Iterator, Optional

from tree_sitter import Node, Parser, Tree
from tree_sitter_language_pack import get_language

from ..errors import ExtractionFailure
from ..models import SourceSpan

_local = threading.local()


def get_parser(grammar: str) -> Parser:
    """Return a parser for ``grammar`` owned by the calling thread."""
    parsers: Optional[Dict[str, Parser]] = getattr(_local, "parsers", None)
    if parsers is None:
        parsers = {}
        _local.parsers = parsers
    parser = parsers.get(grammar)
    if parser is not None:
        return parser
    try:
        language = get_language(grammar)  # type: ignore[arg-type]
    except Exception as exc:
        raise ExtractionFailure(f"tree-sitter grammar '{grammar}' is unavailable: {exc}") from exc
    parser = Parser(language)
    parsers[grammar] = parser
    return parser


def parse_source(grammar: str, source: bytes) -> Tree:
    parser = get_parser(grammar)
    tree = parser.parse(source)
    if tree is None:
        raise ExtractionFailure(f"tree-sitter returned no tree for grammar '{grammar}'")
    return tree


def node_text(node: Optional[Node], source: bytes) -> str:
    if node is None:
        return ""
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def span_of(node: Node) -> SourceSpan:
    return SourceSpan(start_line=node.start_point[0] + 1, end_line=node.end_point[0] + 1)


def header_text(node: Node, source: bytes, body: Optional[Node]) -> str:
    """Declaration text up to (not including) its body, whitespace collapsed."""
    end = body.start_byte if body is not None else node.end_byte
    raw = source[node.start_byte : end].decode("utf-8", errors="replace")
    return " ".join(raw.split()).rstrip(":{;").strip()


def first_line(node: Node, source: bytes) -> str:
    text = node_text(node, source).strip()
    line = text.splitlines()[0] if text else ""
    return line.rstrip("{").strip()


def strip_quotes(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in {'"', "'", "`"}:
        return text[1:-1]
    return text


def child_of_type(node: Node, *types: str) -> Optional[Node]:
    for child in node.children:
        if child.type in types:
            return child
    return None


def iter_descendants(node: Node) -> Iterator[Node]:
    """Depth-first, document-order traversal below ``node``."""
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


__all__ = [
    "child_of_type",
    "first_line",
    "get_parser",
    "header_text",
    "iter_descendants",
    "node_text",
    "parse_source",
    "span_of",
    "strip_quotes",
]
