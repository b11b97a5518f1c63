"""Tests for the FastAPI service mode."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from codeatlas.config import CodeAtlasConfig
from codeatlas.errors import CancellationError
from codeatlas.service import create_app
from tests._fixtures.repo_builder import RepoBuilder


class _CancellingPipeline:
    def __init__(self, config: CodeAtlasConfig) -> None:
        self.config = config

    def run(self, root: Path):
        raise CancellationError(f"Analysis timed out after {self.config.analysis.timeout:g}s")


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_analyze_endpoint_returns_report(client: TestClient, repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "core.py": '"""Core."""\n\ndef run():\n    """Run."""\n\ndef helper():\n    pass\n',
            "__main__.py": "from core import run\n\nrun()\n",
        }
    )

    response = client.post("/analyze", json={"path": str(repo_builder.path()), "workers": 2})

    assert response.status_code == 200
    data = response.json()
    assert data["version"] == "1"
    assert [(gap["module"], gap["export"]) for gap in data["gaps"]["dead_exports"]] == [("core.py", "helper")]
    assert [(gap["module"], gap["export"]) for gap in data["gaps"]["undocumented_exports"]] == [
        ("core.py", "helper")
    ]


def test_analyze_endpoint_rejects_missing_path(client: TestClient, tmp_path: Path) -> None:
    response = client.post("/analyze", json={"path": str(tmp_path / "missing")})

    assert response.status_code == 400
    assert "does not exist" in response.json()["detail"]


def test_analyze_endpoint_validates_payload(client: TestClient, tmp_path: Path) -> None:
    response = client.post("/analyze", json={"path": str(tmp_path), "workers": 0})

    assert response.status_code == 422


def test_analyze_endpoint_reports_cancellation(tmp_path: Path) -> None:
    client = TestClient(create_app(_CancellingPipeline))

    response = client.post("/analyze", json={"path": str(tmp_path), "timeout": 2})

    assert response.status_code == 408
    assert response.json() == {"detail": "Analysis timed out after 2s"}


def test_analyze_endpoint_rejects_missing_module(client: TestClient, repo_builder: RepoBuilder) -> None:
    repo_builder.write({"core.py": "def run():\n    pass\n"})

    response = client.post("/analyze", json={"path": str(repo_builder.path()), "module": "pkg"})

    assert response.status_code == 400
    assert "Module directory does not exist" in response.json()["detail"]
