"""CLI parser and command behaviour tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from codeatlas.cli import _build_parser, main
from tests._fixtures.repo_builder import RepoBuilder


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "analyze"])
    assert args.verbose is True
    assert args.command == "analyze"
    assert args.path == "."


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["analyze", "--verbose"])
    assert args.verbose is True


def test_cli_analyze_flags() -> None:
    parser = _build_parser()
    args = parser.parse_args(
        [
            "analyze",
            "repo",
            "--workers",
            "2",
            "--timeout",
            "1.5",
            "--entry-point",
            "main",
            "--entry-point",
            "cli.ts:run",
            "--include-test-exports",
            "--format",
            "summary",
        ]
    )
    assert args.path == "repo"
    assert args.workers == 2
    assert args.timeout == 1.5
    assert args.entry_points == ["main", "cli.ts:run"]
    assert args.include_test_exports is True
    assert args.format == "summary"


def test_cli_serve_defaults() -> None:
    args = _build_parser().parse_args(["serve"])
    assert args.host == "127.0.0.1"
    assert args.port == 8000


def _small_repo(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "lib.ts": "/** Used. */\nexport function used() {}\nexport function unused() {}\n",
            "app.ts": "import { used } from './lib';\nused();\n",
        }
    )


def test_analyze_writes_report_file(repo_builder: RepoBuilder, tmp_path: Path, capsys) -> None:
    _small_repo(repo_builder)
    output = tmp_path / "out" / "report.json"

    main(["analyze", str(repo_builder.path()), "-o", str(output), "--workers", "1"])

    assert "Report written to" in capsys.readouterr().out
    report = json.loads(output.read_text(encoding="utf-8"))
    dead = [(gap["module"], gap["export"]) for gap in report["gaps"]["dead_exports"]]
    assert dead == [("lib.ts", "unused")]


def test_analyze_prints_json_to_stdout(repo_builder: RepoBuilder, capsys) -> None:
    _small_repo(repo_builder)

    main(["analyze", str(repo_builder.path())])

    report = json.loads(capsys.readouterr().out)
    assert report["statistics"]["files"] == 2
    assert report["statistics"]["edges"] == 1


def test_analyze_summary_format(repo_builder: RepoBuilder, capsys) -> None:
    _small_repo(repo_builder)

    main(["analyze", str(repo_builder.path()), "--format", "summary"])

    out = capsys.readouterr().out
    assert "Analyzed 2 files" in out
    assert "Dead exports: 1" in out


def test_analyze_missing_root_exits_with_error(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["analyze", str(tmp_path / "missing")])

    assert excinfo.value.code == 1
    assert "codeatlas analyze failed" in capsys.readouterr().err


def test_analyze_rejects_invalid_workers(repo_builder: RepoBuilder, capsys) -> None:
    _small_repo(repo_builder)

    with pytest.raises(SystemExit) as excinfo:
        main(["analyze", str(repo_builder.path()), "--workers", "0"])

    assert excinfo.value.code == 1
    assert "analysis.workers" in capsys.readouterr().err


def test_config_command_prints_effective_yaml(repo_builder: RepoBuilder, capsys) -> None:
    repo_builder.write({".codeatlas.yml": "analysis:\n  workers: 3\n"})

    main(["config", str(repo_builder.path())])

    data = yaml.safe_load(capsys.readouterr().out)
    assert data["analysis"]["workers"] == 3
    assert "main" in data["gaps"]["entry_points"]


def test_analyze_module_limits_gaps_to_the_subtree(repo_builder: RepoBuilder, capsys) -> None:
    repo_builder.write(
        {
            "lib/util.ts": "export function helper() {}\nexport function unused() {}\n",
            "app/main.ts": "import { helper } from '../lib/util';\nhelper();\n",
            "app/extra.ts": "export function orphan() {}\n",
        }
    )

    main(["analyze", str(repo_builder.path()), "--module", "lib/"])

    report = json.loads(capsys.readouterr().out)
    assert report["scope"] == "lib"
    assert [(gap["module"], gap["export"]) for gap in report["gaps"]["dead_exports"]] == [
        ("lib/util.ts", "unused")
    ]
    assert report["statistics"]["files"] == 3


def test_analyze_missing_module_exits_with_error(repo_builder: RepoBuilder, capsys) -> None:
    _small_repo(repo_builder)

    with pytest.raises(SystemExit) as excinfo:
        main(["analyze", str(repo_builder.path()), "--module", "nowhere"])

    assert excinfo.value.code == 1
    assert "Module directory does not exist" in capsys.readouterr().err


def test_config_init_writes_loadable_defaults(tmp_path: Path, capsys) -> None:
    main(["config", str(tmp_path), "--init"])

    assert "Configuration written to" in capsys.readouterr().out
    written = yaml.safe_load((tmp_path / ".codeatlas.yml").read_text(encoding="utf-8"))
    assert "root" not in written
    assert written["analysis"]["workers"] == 4

    main(["config", str(tmp_path)])
    effective = yaml.safe_load(capsys.readouterr().out)
    assert effective["gaps"] == written["gaps"]


def test_config_init_refuses_to_overwrite_without_force(tmp_path: Path, capsys) -> None:
    (tmp_path / ".codeatlas.yml").write_text("analysis:\n  workers: 2\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["config", str(tmp_path), "--init"])

    assert excinfo.value.code == 1
    assert "already exists" in capsys.readouterr().err

    main(["config", str(tmp_path), "--init", "--force"])
    assert "workers: 4" in (tmp_path / ".codeatlas.yml").read_text(encoding="utf-8")
