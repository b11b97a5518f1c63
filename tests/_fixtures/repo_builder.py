"""Helper utilities for constructing temporary source trees in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import List, Mapping, Optional

from codeatlas.config import CodeAtlasConfig
from codeatlas.models import SourceFile
from codeatlas.pipeline import AnalysisPipeline, AnalysisResult
from codeatlas.repo_scanner import RepoScanner


class RepoBuilder:
    """Utility for writing files into a throwaway source tree and analyzing it."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "repo"
        self.root.mkdir()
        self._scanner = RepoScanner()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the tree."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def write_bytes(self, relative: str, content: bytes) -> None:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    def scan(self, config: Optional[CodeAtlasConfig] = None) -> List[SourceFile]:
        """Return a fresh list of discovered source files."""
        return self._scanner.scan(self.root, config)

    def config(self) -> CodeAtlasConfig:
        return CodeAtlasConfig(root=self.root)

    def analyze(self, config: Optional[CodeAtlasConfig] = None) -> AnalysisResult:
        """Run the full pipeline over the tree."""
        return AnalysisPipeline(config or self.config()).run(self.root)

    def path(self) -> Path:
        """Return the tree root path."""
        return self.root


__all__ = ["RepoBuilder"]
