"""Source tree discovery: walking, ignore rules and language tagging."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Sequence

from .config import CodeAtlasConfig
from .logging import get_logger
from .models import SourceFile

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "node_modules",
    "target",
    "dist",
    "build",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
    ".codeatlas",
}

_LANGUAGE_BY_SUFFIX = {
    ".py": "python",
    ".pyi": "python",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".rs": "rust",
    ".go": "go",
    ".java": "java",
    ".rb": "ruby",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cc": "cpp",
    ".cs": "csharp",
    ".sh": "shell",
}


@dataclass
class IgnoreRule:
    """A gitignore-style rule from .gitignore or ``exclude_paths``."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool

    @property
    def has_slash(self) -> bool:
        return "/" in self.pattern

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False
        if self.anchored or self.has_slash:
            return fnmatchcase(rel_path, self.pattern)
        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern or pattern.startswith("#"):
        return None
    negate = pattern.startswith("!")
    if negate:
        pattern = pattern[1:]
    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern.rstrip("/")
    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern.lstrip("/")
    if not pattern:
        return None
    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
    )


def detect_language(path: str) -> str | None:
    """Return the language tag for ``path`` based on its suffix."""
    suffix = Path(path).suffix.lower()
    return _LANGUAGE_BY_SUFFIX.get(suffix)


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


class RepoScanner:
    """Walks a source tree and yields the files worth analyzing."""

    def __init__(self) -> None:
        self.logger = get_logger("scanner")

    def scan(self, root: Path, config: CodeAtlasConfig | None = None) -> List[SourceFile]:
        """Return discovered source files sorted by relative path."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Source tree not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Source tree is not a directory: {root}")

        rules = self._load_rules(root_path, config)
        max_size = config.analysis.max_file_size if config is not None else None

        files: List[SourceFile] = []
        for path in self._iter_files(root_path, rules):
            rel_path = path.relative_to(root_path).as_posix()
            language = detect_language(rel_path)
            if language is None:
                continue
            try:
                size = path.stat().st_size
            except OSError as exc:
                self.logger.debug("Skipping %s: %s", rel_path, exc)
                continue
            if max_size is not None and size > max_size:
                self.logger.debug("Skipping %s (%d bytes exceeds limit)", rel_path, size)
                continue
            files.append(SourceFile(path=rel_path, language=language, size=size))

        files.sort(key=lambda item: item.path)
        self.logger.debug("Discovered %d source files under %s", len(files), root_path)
        return files

    def _load_rules(self, root: Path, config: CodeAtlasConfig | None) -> List[IgnoreRule]:
        rules: List[IgnoreRule] = []
        gitignore = root / ".gitignore"
        if gitignore.is_file():
            for line in gitignore.read_text(encoding="utf-8", errors="replace").splitlines():
                rule = build_ignore_rule(line)
                if rule is not None:
                    rules.append(rule)
        if config is not None:
            for pattern in config.exclude_paths:
                rule = build_ignore_rule(pattern)
                if rule is not None:
                    rules.append(rule)
        return rules

    @staticmethod
    def _iter_files(root: Path, rules: Sequence[IgnoreRule]) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(root):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            kept_dirs = []
            for name in sorted(dirnames):
                if name in _EXCLUDED_DIRS:
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if _should_ignore(rel_path, True, rules):
                    continue
                kept_dirs.append(name)
            dirnames[:] = kept_dirs

            for filename in sorted(filenames):
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, rules):
                    continue
                yield current_dir / filename


__all__ = ["IgnoreRule", "RepoScanner", "build_ignore_rule", "detect_language"]
