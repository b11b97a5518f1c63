"""Tests for codeatlas.graph and codeatlas.index."""

from __future__ import annotations

from typing import Sequence, Tuple

from codeatlas.graph import ModuleGraphBuilder
from codeatlas.models import ExportDecl, FileRecord, ImportDecl, ResolutionStatus, SourceSpan
from codeatlas.resolver import ModuleResolver


def _record(
    path: str,
    exports: Sequence[str] = (),
    imports: Sequence[Tuple[str, Tuple[str, ...]]] = (),
    language: str = "typescript",
) -> FileRecord:
    return FileRecord(
        path=path,
        language=language,
        exports=tuple(
            ExportDecl(name=name, kind="function", span=SourceSpan(line, line))
            for line, name in enumerate(exports, start=1)
        ),
        imports=tuple(
            ImportDecl(specifier=spec, names=names, span=SourceSpan(line, line))
            for line, (spec, names) in enumerate(imports, start=1)
        ),
    )


def _build(records):
    resolver = ModuleResolver([record.path for record in records])
    return ModuleGraphBuilder().build(records, resolver)


def test_file_without_symbols_has_no_edges_or_index_entries() -> None:
    artifacts = _build([_record("empty.ts"), _record("other.ts", exports=["x"])])

    assert artifacts.graph.edges_from("empty.ts") == ()
    assert artifacts.index.exports_of("empty.ts") == ()
    assert len(artifacts.graph) == 2


def test_imports_between_same_pair_collapse_into_one_edge() -> None:
    artifacts = _build(
        [
            _record("a.ts", exports=["foo", "bar"]),
            _record("b.ts", imports=[("./a", ("foo",)), ("./a.ts", ("bar",))]),
        ]
    )

    edges = artifacts.graph.edges
    assert len(edges) == 1
    assert edges[0].source == "b.ts"
    assert edges[0].target == "a.ts"
    assert edges[0].symbols == frozenset({"foo", "bar"})
    assert edges[0].wildcard is False


def test_self_imports_are_dropped() -> None:
    artifacts = _build([_record("a.ts", exports=["foo"], imports=[("./a", ("foo",))])])

    assert artifacts.graph.edges == ()
    record = artifacts.records[0]
    assert record.imports[0].resolution.status is ResolutionStatus.RESOLVED


def test_external_and_unresolved_imports_create_no_internal_edges() -> None:
    artifacts = _build(
        [_record("a.ts", imports=[("react", ("useState",)), ("lodash", ()), ("./gone", ("x",))])]
    )

    graph = artifacts.graph
    assert graph.edges == ()
    assert [(edge.target, edge.external) for edge in graph.external_edges] == [
        ("lodash", True),
        ("react", True),
    ]
    statuses = [decl.resolution.status for decl in artifacts.records[0].imports]
    assert statuses == [ResolutionStatus.EXTERNAL, ResolutionStatus.EXTERNAL, ResolutionStatus.UNRESOLVED]


def test_index_files_merge_into_one_module() -> None:
    artifacts = _build(
        [
            _record("lib/index.ts", exports=["fromTs"]),
            _record("lib/index.js", exports=["fromJs"]),
            _record("app.ts", imports=[("./lib", ())]),
        ]
    )

    node = artifacts.graph.node("lib")
    assert node is not None
    assert node.paths == ("lib/index.js", "lib/index.ts")
    assert artifacts.graph.module_of("lib/index.ts") == "lib"
    assert [edge.wildcard for edge in artifacts.graph.edges_to("lib")] == [True]
    assert artifacts.index.modules_exporting("fromJs") == ["lib"]


def test_build_is_independent_of_input_order() -> None:
    records = [
        _record("c.ts", imports=[("./a", ("foo",)), ("./b", ())]),
        _record("a.ts", exports=["foo"]),
        _record("b.ts", exports=["bar"], imports=[("./a", ("foo",))]),
    ]

    forward = _build(records)
    backward = _build(list(reversed(records)))

    assert forward.graph.edges == backward.graph.edges
    assert [node.id for node in forward.graph.nodes] == ["a.ts", "b.ts", "c.ts"]
    assert [record.path for record in forward.records] == [record.path for record in backward.records]
    assert forward.graph.successors("c.ts") == ["a.ts", "b.ts"]
    assert forward.graph.predecessors("a.ts") == ["b.ts", "c.ts"]


def test_export_index_lookups() -> None:
    artifacts = _build(
        [
            _record("a.ts", exports=["shared", "onlyA"]),
            _record("b.ts", exports=["shared"]),
        ]
    )
    index = artifacts.index

    assert len(index) == 3
    assert ("a.ts", "onlyA") in index
    assert index.get("b.ts", "shared").name == "shared"
    assert index.get("b.ts", "missing") is None
    assert index.modules_exporting("shared") == ["a.ts", "b.ts"]
    assert [location.path for location in index.locations("shared")] == ["a.ts", "b.ts"]
    assert index.names() == ["onlyA", "shared"]
    assert [(location.module_id, location.name) for location in index] == [
        ("a.ts", "onlyA"),
        ("a.ts", "shared"),
        ("b.ts", "shared"),
    ]


def test_duplicate_declarations_keep_first_by_line() -> None:
    record = FileRecord(
        path="over.ts",
        language="typescript",
        exports=(
            ExportDecl(name="f", kind="function", span=SourceSpan(7, 7), signature="second"),
            ExportDecl(name="f", kind="function", span=SourceSpan(3, 3), signature="first"),
        ),
    )

    index = _build([record]).index

    assert index.get("over.ts", "f").signature == "first"
    assert len(index.locations("f")) == 2


def test_python_package_and_js_index_in_one_directory_stay_separate() -> None:
    artifacts = _build(
        [
            _record("pkg/__init__.py", exports=["api"], language="python"),
            _record("pkg/index.js", exports=["api"], language="javascript"),
            _record("web.js", imports=[("./pkg", ("api",))], language="javascript"),
        ]
    )

    graph = artifacts.graph
    assert [(node.id, node.language) for node in graph.nodes] == [
        ("pkg/__init__.py", "python"),
        ("pkg/index.js", "javascript"),
        ("web.js", "javascript"),
    ]
    assert [(edge.source, edge.target) for edge in graph.edges] == [("web.js", "pkg/index.js")]
    assert artifacts.index.modules_exporting("api") == ["pkg/__init__.py", "pkg/index.js"]
