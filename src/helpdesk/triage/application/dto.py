"""
Triage Application DTOs
========================

Pydantic models for the API layer and for the structured reply expected
from the generative provider.
"""

from typing import List, Optional, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from helpdesk.triage.domain import (
    BackfillReport,
    ClassificationResult,
    FinalRecommendation,
    GroupScore,
    SimilarityOutcome,
    StoreStatus,
    TicketClassification,
)


RecommendationSourceStr = Literal["pattern-based", "combined", "pattern-weighted", "history-weighted"]


# ========== Generative reply DTOs ==========

class PatternReplyGroup(BaseModel):
    """One group entry in the classifier's JSON reply."""
    name: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0, le=100)
    reasoning: str = ""


class PatternReply(BaseModel):
    """The JSON object the classification prompt asks for."""
    model_config = ConfigDict(populate_by_name=True)

    primary_group: PatternReplyGroup = Field(..., alias="primaryGroup")
    alternative_groups: List[PatternReplyGroup] = Field(default_factory=list, alias="alternativeGroups")


# ========== Request DTOs ==========

class ClassifyTicketRequest(BaseModel):
    """Request model for ticket classification."""
    subject: str = Field(..., description="Ticket subject")
    description: Optional[str] = Field(default="", description="Ticket description")

    @field_validator("subject")
    @classmethod
    def validate_subject(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Subject is required")
        if len(v) > 1000:
            raise ValueError("Subject too long (max 1000 characters)")
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> str:
        """Ensure description is not too long for the LLM."""
        v = v or ""
        if len(v) > 10000:
            raise ValueError("Description too long (max 10000 characters)")
        return v


# ========== Response DTOs ==========

class GroupScoreInfo(BaseModel):
    name: str
    confidence: int = Field(..., ge=0, le=100)
    reasoning: str

    @classmethod
    def from_domain(cls, score: GroupScore) -> "GroupScoreInfo":
        return cls(name=score.name, confidence=score.confidence, reasoning=score.reasoning)


class PatternClassificationInfo(BaseModel):
    """Pattern classifier output."""
    primary_group: GroupScoreInfo
    alternative_groups: List[GroupScoreInfo]

    @classmethod
    def from_domain(cls, result: ClassificationResult) -> "PatternClassificationInfo":
        return cls(
            primary_group=GroupScoreInfo.from_domain(result.primary_group),
            alternative_groups=[GroupScoreInfo.from_domain(a) for a in result.alternative_groups],
        )


class SimilarityMatchInfo(BaseModel):
    name: str
    confidence: int = Field(..., ge=0, le=100)
    count: int


class SimilarityClassificationInfo(BaseModel):
    """Similarity classifier output."""
    recommendations: List[SimilarityMatchInfo]
    similar_tickets_count: int
    confidence: int = Field(..., ge=0, le=100, description="Confidence of the top recommendation")
    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def from_domain(cls, outcome: SimilarityOutcome) -> "SimilarityClassificationInfo":
        return cls(
            recommendations=[
                SimilarityMatchInfo(name=m.name, confidence=m.confidence, count=m.count)
                for m in outcome.results
            ],
            similar_tickets_count=outcome.matched_count,
            confidence=outcome.top.confidence if outcome.top else 0,
            success=outcome.success,
            error=outcome.error,
            error_code=outcome.error_code,
        )


class FinalRecommendationInfo(BaseModel):
    group: str
    confidence: int = Field(..., ge=0, le=100)
    source: RecommendationSourceStr
    reasoning: str

    @classmethod
    def from_domain(cls, final: FinalRecommendation) -> "FinalRecommendationInfo":
        return cls(
            group=final.group,
            confidence=final.confidence,
            source=final.source,
            reasoning=final.reasoning,
        )


class ClassifyTicketResponse(BaseModel):
    """Response model for ticket classification."""
    pattern_based_classification: Optional[PatternClassificationInfo]
    pattern_error: Optional[str] = None
    vector_similarity_classification: SimilarityClassificationInfo
    final_recommendation: FinalRecommendationInfo
    processing_time_ms: int

    @classmethod
    def from_domain(
        cls,
        classification: TicketClassification,
        processing_time_ms: int
    ) -> "ClassifyTicketResponse":
        pattern = classification.pattern
        return cls(
            pattern_based_classification=(
                PatternClassificationInfo.from_domain(pattern) if pattern else None
            ),
            pattern_error=classification.pattern_error,
            vector_similarity_classification=SimilarityClassificationInfo.from_domain(
                classification.similarity
            ),
            final_recommendation=FinalRecommendationInfo.from_domain(classification.final),
            processing_time_ms=processing_time_ms,
        )


class BackfillItemInfo(BaseModel):
    id: int
    success: bool
    error: Optional[str] = None


class BackfillResponse(BaseModel):
    """Response model for an embedding backfill batch."""
    processed: int
    successful: int
    failed: int
    results: List[BackfillItemInfo]
    message: str

    @classmethod
    def from_domain(cls, report: BackfillReport) -> "BackfillResponse":
        if report.processed == 0:
            message = "No tickets found that need embeddings"
        else:
            message = f"Embedded {report.successful} of {report.processed} tickets"
        return cls(
            processed=report.processed,
            successful=report.successful,
            failed=report.failed,
            results=[
                BackfillItemInfo(id=item.id, success=item.success, error=item.error)
                for item in report.results
            ],
            message=message,
        )


class StoreStatusResponse(BaseModel):
    """Response model for store setup."""
    reachable: bool
    ticket_count: int
    vector_search_enabled: bool
    embedding_attribute_present: bool
    embedded_count: int
    ready: bool

    @classmethod
    def from_domain(cls, status: StoreStatus) -> "StoreStatusResponse":
        return cls(
            reachable=status.reachable,
            ticket_count=status.ticket_count,
            vector_search_enabled=status.vector_search_enabled,
            embedding_attribute_present=status.embedding_attribute_present,
            embedded_count=status.embedded_count,
            ready=status.ready,
        )
