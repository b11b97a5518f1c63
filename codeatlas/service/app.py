"""FastAPI application entrypoint for codeatlas service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import CodeAtlasConfig, load_config, normalise_module
from ..errors import CancellationError, ConfigurationError
from ..logging import get_logger
from ..pipeline import AnalysisPipeline
from ..report import AnalysisReport

logger = get_logger("service")


class AnalyzeRequest(BaseModel):
    path: str
    workers: Optional[int] = Field(default=None, ge=1)
    timeout: Optional[float] = Field(default=None, gt=0)
    entry_points: List[str] = Field(default_factory=list)
    include_test_exports: bool = False
    module: Optional[str] = None


class HealthResponse(BaseModel):
    status: str


PipelineFactory = Callable[[CodeAtlasConfig], AnalysisPipeline]


def _default_pipeline(config: CodeAtlasConfig) -> AnalysisPipeline:
    return AnalysisPipeline(config)


def _config_for(payload: AnalyzeRequest) -> CodeAtlasConfig:
    config = load_config(Path(payload.path).expanduser())
    if payload.workers is not None:
        config.analysis.workers = payload.workers
    if payload.timeout is not None:
        config.analysis.timeout = payload.timeout
    if payload.include_test_exports:
        config.analysis.include_test_exports = True
    if payload.module is not None:
        config.analysis.module = normalise_module(payload.module)
    for pattern in payload.entry_points:
        if pattern not in config.gaps.entry_points:
            config.gaps.entry_points.append(pattern)
    return config


def create_app(pipeline_factory: PipelineFactory = _default_pipeline) -> FastAPI:
    """Create the FastAPI application exposing codeatlas analysis."""

    app = FastAPI(title="codeatlas Service", version="1.0.0")

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/analyze")
    async def analyze(payload: AnalyzeRequest) -> Dict[str, Any]:
        def _run_analysis() -> Dict[str, Any]:
            config = _config_for(payload)
            result = pipeline_factory(config).run(Path(payload.path).expanduser())
            return AnalysisReport(result).as_dict()

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _run_analysis)

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(_: Any, exc: ConfigurationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(CancellationError)
    async def cancellation_error_handler(_: Any, exc: CancellationError) -> JSONResponse:
        logger.warning("Analysis request cancelled: %s", exc)
        return JSONResponse(status_code=408, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["AnalyzeRequest", "create_app", "run_service"]
