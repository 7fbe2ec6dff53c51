"""
Triage Domain Layer
===================

Domain layer for support-group triage.

Contains:
- Entities: SupportGroup, ClassificationResult, SimilarityOutcome, FinalRecommendation, ...
- Taxonomy: the built-in support groups and the YAML loader
- Reconciliation: neighbour tallying and the recommendation merge rules

This layer is framework-agnostic and contains pure business logic.
"""

from helpdesk.triage.domain.entities import (
    BackfillItemResult,
    BackfillReport,
    ClassificationPromptBuilder,
    ClassificationResult,
    FinalRecommendation,
    GroupScore,
    HistoricalTicket,
    NeighborMatch,
    SimilarityMatch,
    SimilarityOutcome,
    StoreStatus,
    SupportGroup,
    TicketClassification,
    build_ticket_text,
)
from helpdesk.triage.domain.reconciliation import (
    DEFAULT_POLICY,
    ReconciliationPolicy,
    reconcile,
    recommend_from_history,
    round_half_up,
    tally_neighbors,
)
from helpdesk.triage.domain.taxonomy import (
    DEFAULT_SUPPORT_GROUPS,
    Taxonomy,
    load_support_groups,
    resolve_taxonomy,
)

__all__ = [
    "BackfillItemResult",
    "BackfillReport",
    "ClassificationPromptBuilder",
    "ClassificationResult",
    "FinalRecommendation",
    "GroupScore",
    "HistoricalTicket",
    "NeighborMatch",
    "SimilarityMatch",
    "SimilarityOutcome",
    "StoreStatus",
    "SupportGroup",
    "TicketClassification",
    "build_ticket_text",
    "DEFAULT_POLICY",
    "ReconciliationPolicy",
    "reconcile",
    "recommend_from_history",
    "round_half_up",
    "tally_neighbors",
    "DEFAULT_SUPPORT_GROUPS",
    "Taxonomy",
    "load_support_groups",
    "resolve_taxonomy",
]
