"""site-safety - AI-assisted hazard analysis for work-site photos."""

__version__ = "0.1.0"
__author__ = "site-safety contributors"
__license__ = "MIT"

import logging

# Public API
from .hazard_analysis import (
    CompressedMedia,
    EmptyResponse,
    HazardRecord,
    MediaDecodeError,
    ParseFailure,
    PhotoAnalysisRecord,
    RawMedia,
    SchemaMismatch,
    coerce_hazard_list,
    coerce_photo_analysis,
    parse,
    reduce,
    run_pipeline,
)

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "reduce",
    "parse",
    "coerce_hazard_list",
    "coerce_photo_analysis",
    "run_pipeline",
    "RawMedia",
    "CompressedMedia",
    "HazardRecord",
    "PhotoAnalysisRecord",
    "MediaDecodeError",
    "EmptyResponse",
    "ParseFailure",
    "SchemaMismatch",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
