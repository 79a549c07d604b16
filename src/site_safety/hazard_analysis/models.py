"""Data models for media, AI requests and hazard analysis results."""

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class RawMedia:
    """An image exactly as the user supplied it."""
    data: bytes
    mime_type: str
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        """Size of the raw buffer in bytes."""
        return len(self.data)

    @classmethod
    def from_path(cls, path: str) -> "RawMedia":
        """Read an image file, guessing its MIME type from the extension."""
        file_path = Path(path)
        mime_type, _ = mimetypes.guess_type(file_path.name)
        return cls(
            data=file_path.read_bytes(),
            mime_type=mime_type or "application/octet-stream",
            filename=file_path.name,
        )


@dataclass(frozen=True)
class CompressedMedia:
    """Result of fitting an image under a byte-size ceiling."""
    data: bytes
    mime_type: str
    original_size: int
    final_size: int
    steps: int = 0  # encode trials, 0 on the fast path
    oversized: bool = False
    width: Optional[int] = None
    height: Optional[int] = None
    quality: Optional[float] = None

    @property
    def compression_ratio(self) -> float:
        """Final size relative to the original size."""
        if self.original_size == 0:
            return 1.0
        return self.final_size / self.original_size

    def to_dict(self) -> Dict[str, Any]:
        """Metadata only, the encoded bytes are left out."""
        return {
            "mime_type": self.mime_type,
            "original_size": self.original_size,
            "final_size": self.final_size,
            "steps": self.steps,
            "oversized": self.oversized,
            "width": self.width,
            "height": self.height,
            "quality": self.quality,
        }


class AnalysisKind(str, Enum):
    """Structured analyses the pipeline can run."""
    PHOTO_ANALYSIS = "photo_analysis"
    RISK_ASSESSMENT = "risk_assessment"
    ADDITIONAL_HAZARDS = "additional_hazards"


@dataclass
class CompletionRequest:
    """Payload handed to a generative AI completion service."""
    instruction_text: str
    media_bytes: Optional[bytes] = None
    mime_type: Optional[str] = None
    task: str = "generic"
    history: List[Tuple[str, str]] = field(default_factory=list)  # (role, text)
    expect_json: bool = True

    @property
    def has_media(self) -> bool:
        return self.media_bytes is not None


class RiskLevel(str, Enum):
    """Risk bands derived from severity x likelihood."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


def risk_level(severity: int, likelihood: int) -> RiskLevel:
    """Classify a hazard by its risk score.

    Args:
        severity: Severity on a 1-5 scale
        likelihood: Likelihood on a 1-5 scale

    Returns:
        VERY_HIGH for scores of 15 and above, HIGH from 10, MEDIUM from 5,
        LOW otherwise.
    """
    score = severity * likelihood
    if score >= 15:
        return RiskLevel.VERY_HIGH
    if score >= 10:
        return RiskLevel.HIGH
    if score >= 5:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


@dataclass(frozen=True)
class HazardRecord:
    """One row of a risk assessment."""
    description: str
    severity: int
    likelihood: int
    countermeasures: str

    @property
    def risk_score(self) -> int:
        return self.severity * self.likelihood

    @property
    def risk_level(self) -> RiskLevel:
        return risk_level(self.severity, self.likelihood)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON shape the AI service is asked to produce."""
        return {
            "description": self.description,
            "severity": self.severity,
            "likelihood": self.likelihood,
            "countermeasures": self.countermeasures,
        }


@dataclass(frozen=True)
class PhotoAnalysisRecord:
    """Hazards and improvement suggestions found in a work-site photo."""
    hazards: List[Any] = field(default_factory=list)
    engineering_solutions: List[Any] = field(default_factory=list)
    management_solutions: List[Any] = field(default_factory=list)
    related_regulations: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire format."""
        return {
            "hazards": self.hazards,
            "engineeringSolutions": self.engineering_solutions,
            "managementSolutions": self.management_solutions,
            "relatedRegulations": self.related_regulations,
        }
