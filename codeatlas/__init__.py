"""Static cross-reference analysis of source trees."""

from .config import CodeAtlasConfig, load_config
from .crossref import CrossReferenceAnalyzer, GapReport
from .errors import CancellationError, CodeAtlasError, ConfigurationError, ExtractionFailure
from .pipeline import AnalysisPipeline, AnalysisResult

__version__ = "0.1.0"

__all__ = [
    "AnalysisPipeline",
    "AnalysisResult",
    "CancellationError",
    "CodeAtlasConfig",
    "CodeAtlasError",
    "ConfigurationError",
    "CrossReferenceAnalyzer",
    "ExtractionFailure",
    "GapReport",
    "load_config",
]
