"""Domain entities for heuristic answer validation."""

from dataclasses import dataclass, field
from enum import Enum


class ConfidenceLevel(str, Enum):
    """Self-reported confidence tag extracted from a generated answer."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class QualityMetrics:
    """Raw detections the validation score is computed from."""

    has_citation: bool = False
    citation_count: int = 0
    has_confidence: bool = False
    is_not_found: bool = False
    has_code_example: bool = False
    has_steps: bool = False
    has_speculative_language: bool = False
    word_count: int = 0


@dataclass(frozen=True)
class ValidationResult:
    """Quality assessment of one generated answer.

    ``score`` is always within [0, 100] and ``is_valid`` is
    ``score >= 60``.
    """

    is_valid: bool
    confidence: ConfidenceLevel
    score: int
    warnings: tuple[str, ...] = field(default_factory=tuple)
    quality_metrics: QualityMetrics = field(default_factory=QualityMetrics)
