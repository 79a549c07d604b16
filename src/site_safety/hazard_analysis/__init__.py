"""Image compression, AI reply parsing and hazard record coercion."""

from .compressor import reduce, reduce_media
from .exceptions import (
    EmptyResponse,
    HazardAnalysisError,
    MediaDecodeError,
    ParseFailure,
    SchemaMismatch,
)
from .models import (
    AnalysisKind,
    CompletionRequest,
    CompressedMedia,
    HazardRecord,
    PhotoAnalysisRecord,
    RawMedia,
    RiskLevel,
)
from .pipeline import PipelineContext, run_pipeline, run_pipeline_async
from .response_parser import coerce_hazard_list, coerce_photo_analysis, parse

__all__ = [
    "reduce",
    "reduce_media",
    "parse",
    "coerce_hazard_list",
    "coerce_photo_analysis",
    "run_pipeline",
    "run_pipeline_async",
    "PipelineContext",
    "AnalysisKind",
    "CompletionRequest",
    "CompressedMedia",
    "HazardRecord",
    "PhotoAnalysisRecord",
    "RawMedia",
    "RiskLevel",
    "HazardAnalysisError",
    "MediaDecodeError",
    "EmptyResponse",
    "ParseFailure",
    "SchemaMismatch",
]
