"""
Triage Domain Entities
======================

Domain entities for support-group classification.

Contains pure Python business objects: the support group taxonomy, the
outputs of both classifiers and the final reconciled recommendation.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from helpdesk.config import VALID_RECOMMENDATION_SOURCES
from helpdesk.core import DomainException


def build_ticket_text(subject: str, description: Optional[str]) -> str:
    """Text that gets embedded for a ticket: subject and description, space-joined."""
    return f"{subject} {description or ''}".strip()


def _check_confidence(value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DomainException(f"Confidence must be an integer, got {value!r}")
    if not 0 <= value <= 100:
        raise DomainException(f"Confidence must be between 0 and 100, got {value}")


@dataclass(frozen=True)
class SupportGroup:
    """
    A support group the pattern classifier may route to.

    Static configuration: the set of groups forms the closed taxonomy.
    """
    name: str
    responsibilities: str
    examples: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise DomainException("Support group name must not be empty")
        object.__setattr__(self, "examples", tuple(self.examples))


@dataclass(frozen=True)
class GroupScore:
    """One group with the classifier's confidence (0-100) and reasoning."""
    name: str
    confidence: int
    reasoning: str = ""

    def __post_init__(self):
        _check_confidence(self.confidence)


@dataclass(frozen=True)
class ClassificationResult:
    """
    Result of the pattern classifier.

    At most two alternatives, none of them the primary group.
    """
    primary_group: GroupScore
    alternative_groups: Tuple[GroupScore, ...] = ()
    model_used: str = ""
    latency_ms: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        object.__setattr__(self, "alternative_groups", tuple(self.alternative_groups))
        if len(self.alternative_groups) > 2:
            raise DomainException("At most two alternative groups are allowed")
        if any(alt.name == self.primary_group.name for alt in self.alternative_groups):
            raise DomainException("Alternative groups must not repeat the primary group")


@dataclass(frozen=True)
class HistoricalTicket:
    """A previously handled ticket, read from the historical store."""
    id: int
    subject: str
    description: Optional[str] = None
    assigned_group: Optional[str] = None
    ticket_id: Optional[str] = None
    embedding: Optional[List[float]] = None

    @property
    def text(self) -> str:
        return build_ticket_text(self.subject, self.description)


@dataclass(frozen=True)
class NeighborMatch:
    """A labeled historical ticket returned by a nearest-neighbour search."""
    group: str
    similarity: float


@dataclass(frozen=True)
class SimilarityMatch:
    """A group derived from neighbour frequency."""
    name: str
    confidence: int
    count: int

    def __post_init__(self):
        _check_confidence(self.confidence)


@dataclass(frozen=True)
class SimilarityOutcome:
    """
    Result of the similarity classifier.

    On failure results is empty, error carries a human-readable reason and
    error_code the name of the failure class.
    """
    success: bool
    results: Tuple[SimilarityMatch, ...] = ()
    matched_count: int = 0
    error: Optional[str] = None
    error_code: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "results", tuple(self.results))

    @classmethod
    def failure(cls, reason: str, error_code: Optional[str] = None) -> "SimilarityOutcome":
        return cls(success=False, results=(), matched_count=0, error=reason, error_code=error_code)

    @property
    def top(self) -> Optional[SimilarityMatch]:
        return self.results[0] if self.results else None

    def find(self, name: str) -> Optional[SimilarityMatch]:
        """First match for the given group name, if any."""
        return next((match for match in self.results if match.name == name), None)


@dataclass(frozen=True)
class FinalRecommendation:
    """The reconciled support group recommendation."""
    group: str
    confidence: int
    source: str
    reasoning: str

    def __post_init__(self):
        _check_confidence(self.confidence)
        if self.source not in VALID_RECOMMENDATION_SOURCES:
            raise DomainException(f"Unknown recommendation source: {self.source}")


@dataclass(frozen=True)
class TicketClassification:
    """Everything classify_ticket produces for one request."""
    pattern: Optional[ClassificationResult]
    similarity: SimilarityOutcome
    final: FinalRecommendation
    pattern_error: Optional[str] = None


@dataclass(frozen=True)
class StoreStatus:
    """Readiness of the historical store for similarity search."""
    reachable: bool
    ticket_count: int = 0
    vector_search_enabled: bool = False
    embedding_attribute_present: bool = False
    embedded_count: int = 0

    @property
    def ready(self) -> bool:
        return (
            self.reachable
            and self.vector_search_enabled
            and self.embedding_attribute_present
            and self.embedded_count > 0
        )


@dataclass(frozen=True)
class BackfillItemResult:
    id: int
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class BackfillReport:
    """Outcome of one embedding backfill batch."""
    results: Tuple[BackfillItemResult, ...] = ()

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for item in self.results if item.success)

    @property
    def failed(self) -> int:
        return self.processed - self.successful


class ClassificationPromptBuilder:
    """
    Builds prompts for support-group classification.

    The system prompt is derived from a taxonomy so that tests and callers
    can supply their own groups.
    """

    INTRO = (
        "You are a ticket classification assistant for an IT helpdesk. "
        "Your task is to analyze the subject and description of a support ticket "
        "and determine which support group should handle it.\n\n"
        "Here are the support groups and their responsibilities:\n\n"
    )

    INSTRUCTIONS = """
Analyze the ticket details and provide:
1. The most appropriate support group
2. A confidence score (0-100)
3. Brief reasoning for your classification
4. Two alternative support groups that might also be appropriate (with lower confidence)

Use only the support group names listed above.

Format your response as a JSON object with the following structure:
{
  "primaryGroup": {
    "name": "Support Group Name",
    "confidence": 85,
    "reasoning": "Brief explanation of why this group is most appropriate"
  },
  "alternativeGroups": [
    {
      "name": "Alternative Group 1",
      "confidence": 60,
      "reasoning": "Why this could also be appropriate"
    },
    {
      "name": "Alternative Group 2",
      "confidence": 40,
      "reasoning": "Why this might be considered"
    }
  ]
}"""

    @classmethod
    def build_system_prompt(cls, groups: Sequence[SupportGroup]) -> str:
        """Enumerate every group's responsibilities, then its examples."""
        parts = [cls.INTRO]
        for group in groups:
            parts.append(f"{group.name}: {group.responsibilities}\n")

        parts.append("\nFor each support group, here are some example tickets they would handle:\n")
        for group in groups:
            parts.append(f"\n{group.name} examples:\n")
            for example in group.examples:
                parts.append(f"- {example}\n")

        parts.append(cls.INSTRUCTIONS)
        return "".join(parts)

    @classmethod
    def build_user_prompt(cls, subject: str, description: Optional[str]) -> str:
        return (
            f"Ticket Subject: {subject}\n\n"
            f"Ticket Description: {description or 'No description provided'}"
        )
