from __future__ import annotations

from codeatlas.errors import ExtractionFailure
from codeatlas.extractors import ExtractorRegistry, ParsedSymbols, default_registry, extract
from codeatlas.models import ExportDecl, ImportDecl, ParseStatus, SourceSpan


class _ExplodingExtractor:
    languages = ("boom",)

    def parse(self, path: str, source: bytes, language: str) -> ParsedSymbols:
        raise ValueError("parser crashed")


class _FailingExtractor:
    languages = ("nope",)

    def parse(self, path: str, source: bytes, language: str) -> ParsedSymbols:
        raise ExtractionFailure("grammar unavailable")


class _UnorderedExtractor:
    languages = ("fake",)

    def parse(self, path: str, source: bytes, language: str) -> ParsedSymbols:
        return ParsedSymbols(
            exports=[
                ExportDecl(name="late", kind="function", span=SourceSpan(9, 9)),
                ExportDecl(name="early", kind="function", span=SourceSpan(2, 3)),
            ],
            imports=[
                ImportDecl(specifier="./b", span=SourceSpan(5, 5)),
                ImportDecl(specifier="./a", span=SourceSpan(1, 1)),
            ],
        )


def test_default_registry_supports_builtin_languages() -> None:
    registry = default_registry(include_plugins=False)

    for language in ("python", "typescript", "tsx", "javascript", "rust"):
        assert registry.supports(language)
    assert not registry.supports("cobol")
    assert registry.languages() == ["javascript", "python", "rust", "tsx", "typescript"]


def test_unsupported_language_yields_failed_record() -> None:
    record = default_registry(include_plugins=False).extract("main.go", b"package main\n", "go")

    assert record.status is ParseStatus.FAILED
    assert "unsupported" in (record.reason or "")
    assert record.exports == ()
    assert record.imports == ()


def test_extractor_errors_never_escape() -> None:
    registry = ExtractorRegistry()
    registry.register(_ExplodingExtractor())
    registry.register(_FailingExtractor())

    crashed = registry.extract("a.boom", b"", "boom")
    failed = registry.extract("a.nope", b"", "nope")

    assert crashed.status is ParseStatus.FAILED
    assert "parser crashed" in (crashed.reason or "")
    assert failed.status is ParseStatus.FAILED
    assert failed.reason == "grammar unavailable"


def test_records_are_sorted_by_line() -> None:
    registry = ExtractorRegistry()
    registry.register(_UnorderedExtractor())

    record = registry.extract("x.fake", b"", "fake")

    assert record.status is ParseStatus.OK
    assert [export.name for export in record.exports] == ["early", "late"]
    assert [decl.specifier for decl in record.imports] == ["./a", "./b"]


def test_module_level_extract_uses_default_registry() -> None:
    record = extract("util.py", b"def util():\n    pass\n", "python")

    assert record.status is ParseStatus.OK
    assert [export.name for export in record.exports] == ["util"]


def test_empty_file_has_no_symbols() -> None:
    record = extract("empty.ts", b"", "typescript")

    assert record.status is ParseStatus.OK
    assert record.exports == ()
    assert record.imports == ()
