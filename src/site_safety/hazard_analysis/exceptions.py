"""Errors raised by the hazard analysis core."""

from typing import Optional


class HazardAnalysisError(Exception):
    """Base class for every failure raised by the analysis core.

    ``stage`` names the pipeline stage the error came from. It is filled in
    by the orchestrator; errors raised from a direct call leave it ``None``.
    """

    retryable = False

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class MediaDecodeError(HazardAnalysisError):
    """The source bytes cannot be interpreted as an image."""


class EmptyResponse(HazardAnalysisError):
    """The AI service returned no usable text."""

    retryable = True


class ParseFailure(HazardAnalysisError):
    """No parsing strategy recovered valid JSON from a response."""

    retryable = True

    def __init__(
        self,
        message: str,
        excerpt: str,
        attempted_substring: Optional[str] = None,
        stage: Optional[str] = None,
    ):
        super().__init__(message, stage=stage)
        self.excerpt = excerpt
        self.attempted_substring = attempted_substring


class SchemaMismatch(HazardAnalysisError):
    """The response is valid JSON but its shape is not recognised."""
