"""Heuristic quality scoring for generated answers.

Deterministic and side-effect free: every rule is a regex or string check
over the answer text plus the number of documents that were supplied.
"""

import re
from collections.abc import Sized

from search_backend.domain.entities import ConfidenceLevel, QualityMetrics, ValidationResult

VALID_THRESHOLD = 60
MIN_WORDS = 20
DETAILED_WORDS = 50

# Rubric weights sum to 100.
SCORE_CONFIDENCE = 25
SCORE_GROUNDED = 25
SCORE_CODE = 15
SCORE_STEPS = 15
SCORE_NO_SPECULATION = 10
SCORE_DETAILED = 10

_CITATION = re.compile(r"\[Source:[^\]]*\]\([^)]*\)", re.IGNORECASE)
_CONFIDENCE = re.compile(
    r"\**confidence\**\s*:\s*\**\s*(high|medium|low)\b", re.IGNORECASE
)
_NOT_FOUND = re.compile(
    r"couldn[’']?t find (this|that|any|the)?\s*information"
    r"|could not find (this|that|any|the)?\s*information"
    r"|not (in|covered in|mentioned in|available in) the documentation"
    r"|not in documentation"
    r"|no information (is )?available",
    re.IGNORECASE,
)
_FENCED_CODE = re.compile(r"```")
_INLINE_CODE = re.compile(r"`[^`\n]+`")
_STEPS = re.compile(r"^\s*(\d+[.)]|[-*•])\s+\S", re.MULTILINE)
_SPECULATIVE = re.compile(
    r"\b(might be|probably|possibly|perhaps|i think|i believe|i guess|it seems|presumably)\b",
    re.IGNORECASE,
)

WARNING_NO_CITATION = "No source citations found in answer"
WARNING_NO_CONFIDENCE = "Missing confidence level"
WARNING_SPECULATIVE = "Answer contains speculative language"
WARNING_TOO_SHORT = "Answer is very short"
WARNING_UNREFERENCED_DOCUMENTS = "Answer should reference provided documents"


def _trailing_confidence(answer: str) -> re.Match[str] | None:
    """Match the confidence tag on the last non-empty line only; a
    ``confidence: low`` inside a code sample or mid-answer is not a tag."""
    lines = answer.rstrip().splitlines()
    if not lines:
        return None
    return _CONFIDENCE.search(lines[-1])


class ResponseValidator:
    """Scores an answer with a fixed additive rubric.

    Confidence tag +25, citation or explicit not-found +25, code +15,
    step structure +15, no speculative wording +10, at least 50 words +10.
    An answer is valid at a score of 60 or more.
    """

    def validate(self, answer: str, documents: Sized | None = None) -> ValidationResult:
        document_count = len(documents) if documents is not None else 0
        metrics = self.measure(answer)

        warnings: list[str] = []
        grounded_or_nf = metrics.has_citation or metrics.is_not_found

        if not grounded_or_nf:
            warnings.append(WARNING_NO_CITATION)
        if not metrics.has_confidence:
            warnings.append(WARNING_NO_CONFIDENCE)
        if metrics.has_speculative_language and not metrics.is_not_found:
            warnings.append(WARNING_SPECULATIVE)
        if metrics.word_count < MIN_WORDS and not metrics.is_not_found:
            warnings.append(WARNING_TOO_SHORT)
        if document_count > 0 and metrics.citation_count == 0 and not metrics.is_not_found:
            warnings.append(WARNING_UNREFERENCED_DOCUMENTS)

        score = 0
        if metrics.has_confidence:
            score += SCORE_CONFIDENCE
        if grounded_or_nf:
            score += SCORE_GROUNDED
        if metrics.has_code_example:
            score += SCORE_CODE
        if metrics.has_steps:
            score += SCORE_STEPS
        if not metrics.has_speculative_language:
            score += SCORE_NO_SPECULATION
        if metrics.word_count >= DETAILED_WORDS:
            score += SCORE_DETAILED
        score = max(0, min(100, score))

        return ValidationResult(
            is_valid=score >= VALID_THRESHOLD,
            confidence=self.extract_confidence(answer),
            score=score,
            warnings=tuple(warnings),
            quality_metrics=metrics,
        )

    @staticmethod
    def measure(answer: str) -> QualityMetrics:
        citations = _CITATION.findall(answer)
        return QualityMetrics(
            has_citation=bool(citations),
            citation_count=len(citations),
            has_confidence=_trailing_confidence(answer) is not None,
            is_not_found=_NOT_FOUND.search(answer) is not None,
            has_code_example=bool(_FENCED_CODE.search(answer) or _INLINE_CODE.search(answer)),
            has_steps=_STEPS.search(answer) is not None,
            has_speculative_language=_SPECULATIVE.search(answer) is not None,
            word_count=len(answer.split()),
        )

    @staticmethod
    def extract_confidence(answer: str) -> ConfidenceLevel:
        """Confidence tag on the answer's final line, or UNKNOWN."""
        match = _trailing_confidence(answer)
        if match is None:
            return ConfidenceLevel.UNKNOWN
        return ConfidenceLevel(match.group(1).upper())
