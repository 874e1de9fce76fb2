"""Domain entities for query classification."""

from dataclasses import dataclass, field
from enum import Enum


class QueryCategory(str, Enum):
    """The six intent categories a documentation query can fall into."""

    HOW_TO = "how-to"
    WHAT_IS = "what-is"
    TROUBLESHOOTING = "troubleshooting"
    CONFIGURATION = "configuration"
    API_REFERENCE = "api-reference"
    GENERAL = "general"


class Complexity(str, Enum):
    """Estimated skill level of the person asking."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


@dataclass(frozen=True)
class QueryAnalysis:
    """Classification of a single query.

    Produced once per request by the QueryClassifier and never mutated
    afterwards. ``category`` is always one of the QueryCategory members.
    """

    category: QueryCategory = QueryCategory.GENERAL
    intent: str = ""
    reformulated_query: str | None = None
    keywords: tuple[str, ...] = field(default_factory=tuple)
    complexity: Complexity = Complexity.BEGINNER
