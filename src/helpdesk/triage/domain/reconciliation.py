"""
Recommendation Reconciliation
=============================

Pure functions that turn classifier outputs into one recommendation.

- tally_neighbors: neighbour group frequency -> confidence-ranked matches
- reconcile: pattern result + similarity outcome -> FinalRecommendation

No I/O happens here.
"""

import math
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List

from helpdesk.config import RecommendationSource, Settings
from helpdesk.triage.domain.entities import (
    ClassificationResult,
    FinalRecommendation,
    NeighborMatch,
    SimilarityMatch,
    SimilarityOutcome,
)

HISTORY_DISAGREES_NOTE = " (Note: Historical data suggests different groups.)"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def tally_neighbors(neighbors: Iterable[NeighborMatch]) -> List[SimilarityMatch]:
    """
    Convert neighbour labels into confidence-ranked group matches.

    Confidence is the share of labeled neighbours carrying the group,
    as a 0-100 integer. Ties keep first-seen order.
    """
    counts = Counter(n.group for n in neighbors if n.group)
    total = sum(counts.values())
    if total == 0:
        return []

    matches = [
        SimilarityMatch(name=group, confidence=round_half_up(100 * count / total), count=count)
        for group, count in counts.items()
    ]
    # sorted() is stable, so equal confidences keep encounter order
    return sorted(matches, key=lambda m: m.confidence, reverse=True)


@dataclass(frozen=True)
class ReconciliationPolicy:
    """
    Weights and thresholds of the reconciliation rules.

    agreement_*: both signals name the same top group.
    partial_*: the pattern group appears below the top similarity match.
    history_confidence_bar: history alone wins only strictly above this.
    disagreement_cap: ceiling on pattern confidence when history disagrees.
    """
    agreement_pattern_weight: float = 0.4
    agreement_history_weight: float = 0.6
    partial_pattern_weight: float = 0.7
    partial_history_weight: float = 0.3
    history_confidence_bar: int = 70
    disagreement_cap: int = 70

    @classmethod
    def from_settings(cls, config: Settings) -> "ReconciliationPolicy":
        return cls(
            agreement_pattern_weight=config.agreement_pattern_weight,
            agreement_history_weight=config.agreement_history_weight,
            partial_pattern_weight=config.partial_pattern_weight,
            partial_history_weight=config.partial_history_weight,
            history_confidence_bar=config.history_confidence_bar,
            disagreement_cap=config.disagreement_confidence_cap,
        )

    def blend(self, pattern_weight: float, pattern: int, history_weight: float, history: int) -> int:
        blended = round_half_up(pattern * pattern_weight + history * history_weight)
        return max(0, min(100, blended))


DEFAULT_POLICY = ReconciliationPolicy()


def reconcile(
    pattern: ClassificationResult,
    similarity: SimilarityOutcome,
    policy: ReconciliationPolicy = DEFAULT_POLICY,
) -> FinalRecommendation:
    """
    Merge the two classifier outputs. The first matching rule wins:

    1. no similarity results: pattern primary as-is
    2. pattern primary is the top similarity match: blended, "combined"
    3. pattern primary appears lower in the matches: blended, "pattern-weighted"
    4. top similarity match above the confidence bar: history as-is
    5. otherwise pattern primary with capped confidence
    """
    primary = pattern.primary_group
    top = similarity.top

    if top is None:
        return FinalRecommendation(
            group=primary.name,
            confidence=primary.confidence,
            source=RecommendationSource.PATTERN_BASED,
            reasoning=primary.reasoning,
        )

    if primary.name == top.name:
        return FinalRecommendation(
            group=primary.name,
            confidence=policy.blend(
                policy.agreement_pattern_weight, primary.confidence,
                policy.agreement_history_weight, top.confidence,
            ),
            source=RecommendationSource.COMBINED,
            reasoning=(
                "Both pattern analysis and historical data agree on this group. "
                f"Based on {top.count} similar historical tickets."
            ),
        )

    supporting = similarity.find(primary.name)
    if supporting is not None:
        return FinalRecommendation(
            group=primary.name,
            confidence=policy.blend(
                policy.partial_pattern_weight, primary.confidence,
                policy.partial_history_weight, supporting.confidence,
            ),
            source=RecommendationSource.PATTERN_WEIGHTED,
            reasoning=(
                "Pattern analysis suggests this group, with some support from "
                f"historical data ({supporting.count} similar tickets)."
            ),
        )

    if top.confidence > policy.history_confidence_bar:
        return _from_top_match(top)

    return FinalRecommendation(
        group=primary.name,
        confidence=min(primary.confidence, policy.disagreement_cap),
        source=RecommendationSource.PATTERN_BASED,
        reasoning=primary.reasoning + HISTORY_DISAGREES_NOTE,
    )


def recommend_from_history(similarity: SimilarityOutcome) -> FinalRecommendation:
    """
    Recommendation from similarity alone, for when the pattern classifier failed.

    Raises:
        ValueError: If the outcome has no results
    """
    if similarity.top is None:
        raise ValueError("Cannot recommend from an empty similarity outcome")
    return _from_top_match(similarity.top)


def _from_top_match(top: SimilarityMatch) -> FinalRecommendation:
    return FinalRecommendation(
        group=top.name,
        confidence=top.confidence,
        source=RecommendationSource.HISTORY_WEIGHTED,
        reasoning=(
            f"Based primarily on {top.count} similar historical tickets "
            "that were assigned to this group."
        ),
    )
