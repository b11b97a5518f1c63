"""Configuration loading for codeatlas (.codeatlas.yml)."""

from __future__ import annotations

import posixpath
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .errors import ConfigurationError

CONFIG_FILENAME = ".codeatlas.yml"

_LANGUAGE_FAMILIES = {
    "python": "python",
    "typescript": "typescript",
    "tsx": "typescript",
    "javascript": "javascript",
    "rust": "rust",
}

_DEFAULT_EXTENSIONS: Dict[str, List[str]] = {
    "typescript": [".ts", ".tsx", ".d.ts", ".js", ".jsx"],
    "javascript": [".js", ".jsx", ".mjs", ".cjs"],
    "python": [".py", ".pyi"],
    "rust": [".rs"],
}

_DEFAULT_INDEX_FILES: Dict[str, List[str]] = {
    "typescript": ["index.ts", "index.tsx", "index.d.ts", "index.js"],
    "javascript": ["index.js", "index.jsx", "index.mjs", "index.cjs"],
    "python": ["__init__.py", "__init__.pyi"],
    "rust": ["mod.rs"],
}

_DEFAULT_TEST_PATTERNS = [
    "test/*",
    "*/test/*",
    "tests/*",
    "*/tests/*",
    "__tests__/*",
    "*/__tests__/*",
    "spec/*",
    "*/spec/*",
    "*.test.*",
    "*.spec.*",
    "*_test.*",
    "*_spec.*",
    "test_*.py",
    "conftest.py",
]

_DEFAULT_ENTRY_POINTS = [
    "main",
    "__main__.py",
    "*/__main__.py",
    "main.rs",
    "*/main.rs",
    "bin/*",
    "*/bin/*",
    "cli.*",
    "*/cli.*",
    "setup.py",
]

_DEFAULT_DOCUMENTED_KINDS = [
    "function",
    "class",
    "interface",
    "type",
    "enum",
    "struct",
    "trait",
    "command",
]


def language_family(language: str) -> str:
    """Collapse grammar-level tags (``tsx``) onto their resolution family."""
    return _LANGUAGE_FAMILIES.get(language, language)


@dataclass
class AnalysisConfig:
    """Worker pool, cancellation and scope settings."""

    workers: int = 4
    timeout: Optional[float] = None
    max_file_size: int = 1024 * 1024
    include_test_exports: bool = False
    module: Optional[str] = None


@dataclass
class ResolutionConfig:
    """Inputs for extension and index-file probing."""

    source_roots: List[str] = field(default_factory=lambda: ["", "src"])
    aliases: Dict[str, str] = field(default_factory=lambda: {"@/": "src/"})
    extensions: Dict[str, List[str]] = field(
        default_factory=lambda: {key: list(value) for key, value in _DEFAULT_EXTENSIONS.items()}
    )
    index_files: Dict[str, List[str]] = field(
        default_factory=lambda: {key: list(value) for key, value in _DEFAULT_INDEX_FILES.items()}
    )

    def extensions_for(self, language: str) -> List[str]:
        return list(self.extensions.get(language_family(language), []))

    def index_files_for(self, language: str) -> List[str]:
        return list(self.index_files.get(language_family(language), []))


@dataclass
class GapConfig:
    """Classification rules consumed by the cross-reference analyzer."""

    entry_points: List[str] = field(default_factory=lambda: list(_DEFAULT_ENTRY_POINTS))
    test_patterns: List[str] = field(default_factory=lambda: list(_DEFAULT_TEST_PATTERNS))
    documented_kinds: List[str] = field(default_factory=lambda: list(_DEFAULT_DOCUMENTED_KINDS))


@dataclass
class CodeAtlasConfig:
    """Represents the settings defined in .codeatlas.yml."""

    root: Path
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)
    gaps: GapConfig = field(default_factory=GapConfig)
    exclude_paths: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["root"] = str(self.root)
        return data


def load_config(config_path: Path) -> CodeAtlasConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return CodeAtlasConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    analysis = AnalysisConfig()
    analysis_data = _as_dict(data.get("analysis"), "analysis")
    if "workers" in analysis_data:
        analysis.workers = _as_int(analysis_data["workers"], "analysis.workers")
    if analysis_data.get("timeout") is not None:
        analysis.timeout = _as_float(analysis_data["timeout"], "analysis.timeout")
    if "max_file_size" in analysis_data:
        analysis.max_file_size = _as_int(analysis_data["max_file_size"], "analysis.max_file_size")
    if "include_test_exports" in analysis_data:
        analysis.include_test_exports = _as_bool(
            analysis_data["include_test_exports"], "analysis.include_test_exports"
        )
    if analysis_data.get("module") is not None:
        analysis.module = normalise_module(str(analysis_data["module"]))

    resolution = ResolutionConfig()
    resolution_data = _as_dict(data.get("resolution"), "resolution")
    if "source_roots" in resolution_data:
        resolution.source_roots = [
            _normalise_root(item) for item in _as_str_list(resolution_data["source_roots"])
        ]
    if "aliases" in resolution_data:
        resolution.aliases = {
            str(key): str(value)
            for key, value in _as_dict(resolution_data["aliases"], "resolution.aliases").items()
        }
    for language, values in _as_dict(resolution_data.get("extensions"), "resolution.extensions").items():
        resolution.extensions[language_family(str(language))] = _as_str_list(values)
    for language, values in _as_dict(resolution_data.get("index_files"), "resolution.index_files").items():
        resolution.index_files[language_family(str(language))] = _as_str_list(values)

    gaps = GapConfig()
    gaps_data = _as_dict(data.get("gaps"), "gaps")
    if "entry_points" in gaps_data:
        gaps.entry_points = _as_str_list(gaps_data["entry_points"])
    if "test_patterns" in gaps_data:
        gaps.test_patterns = _as_str_list(gaps_data["test_patterns"])
    if "documented_kinds" in gaps_data:
        gaps.documented_kinds = _as_str_list(gaps_data["documented_kinds"])

    config = CodeAtlasConfig(
        root=root,
        analysis=analysis,
        resolution=resolution,
        gaps=gaps,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
    )
    validate_config(config)
    return config


def validate_config(config: CodeAtlasConfig) -> None:
    """Reject run parameters that would make analysis meaningless."""
    if config.analysis.workers < 1:
        raise ConfigurationError("analysis.workers must be at least 1")
    if config.analysis.timeout is not None and config.analysis.timeout <= 0:
        raise ConfigurationError("analysis.timeout must be a positive number of seconds")
    if config.analysis.max_file_size < 1:
        raise ConfigurationError("analysis.max_file_size must be positive")
    for family, names in config.resolution.index_files.items():
        for name in names:
            if "/" in name:
                raise ConfigurationError(
                    f"resolution.index_files.{family} entries must be file names, got {name!r}"
                )
    module = config.analysis.module
    if module is not None and (module == ".." or module.startswith("../")):
        raise ConfigurationError(f"analysis.module must stay inside the analysis root, got {module!r}")


def normalise_module(value: str) -> Optional[str]:
    """Root-relative POSIX form of a ``--module`` subtree; ``None`` means the whole root."""
    return _normalise_root(value) or None


def write_default_config(root: Path, *, overwrite: bool = False) -> Path:
    """Write a ``.codeatlas.yml`` holding the default settings into ``root``."""
    target = Path(root).expanduser() / CONFIG_FILENAME
    if not target.parent.is_dir():
        raise ConfigurationError(f"Not a directory: {target.parent}")
    if target.exists() and not overwrite:
        raise ConfigurationError(f"{target} already exists")
    data = CodeAtlasConfig(root=target.parent).as_dict()
    data.pop("root")
    target.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return target


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Unable to read {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _normalise_root(value: str) -> str:
    cleaned = posixpath.normpath(value.strip() or ".").strip("/")
    return "" if cleaned in {"", "."} else cleaned


def _as_dict(value: Any, key: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"{key} must be a mapping")
    return dict(value)


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
    raise ConfigurationError(f"{key} must be an integer")


def _as_float(value: Any, key: str) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be a number")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
    raise ConfigurationError(f"{key} must be a number")


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    raise ConfigurationError(f"{key} must be a boolean")


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "AnalysisConfig",
    "CONFIG_FILENAME",
    "CodeAtlasConfig",
    "GapConfig",
    "ResolutionConfig",
    "language_family",
    "load_config",
    "normalise_module",
    "validate_config",
    "write_default_config",
]
