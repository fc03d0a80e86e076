"""Transform pipeline - stage planning and execution."""

from .executor import PipelineExecutor
from .resolver import resolve_pipeline
from .secondary import SecondaryFetchGate
from .stages import Blend, Crop, Pipeline, PipelineStage, Resize, Watermark, format_pipeline, parse_pipeline

__all__ = [
    "Blend",
    "Crop",
    "Pipeline",
    "PipelineExecutor",
    "PipelineStage",
    "Resize",
    "SecondaryFetchGate",
    "Watermark",
    "format_pipeline",
    "parse_pipeline",
    "resolve_pipeline",
]
