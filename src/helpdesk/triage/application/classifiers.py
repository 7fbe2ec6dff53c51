"""
Triage Classifiers
==================

The two independent signals used to route a ticket:

- PatternClassifier: prompts a generative model with the support group
  taxonomy and parses its structured reply. Failures are raised.
- SimilarityClassifier: nearest-neighbour vote over embedded historical
  tickets. Failures are returned as an unsuccessful outcome, never raised.
"""

import json
import re
import time
from typing import Dict, List, Optional

from pydantic import ValidationError

from helpdesk.config import settings
from helpdesk.core import (
    ApplicationException,
    ClassifierUnavailable,
    MalformedResponse,
    ProviderError,
)
from helpdesk.shared.infrastructure.logging import get_logger, log_latency
from helpdesk.triage.application.dto import PatternReply
from helpdesk.triage.application.interfaces import (
    IEmbeddingProvider,
    IHistoricalTicketStore,
    ITextGenerator,
)
from helpdesk.triage.application.readiness import StoreReadiness
from helpdesk.triage.domain import (
    DEFAULT_SUPPORT_GROUPS,
    ClassificationPromptBuilder,
    ClassificationResult,
    GroupScore,
    SimilarityOutcome,
    Taxonomy,
    build_ticket_text,
    round_half_up,
    tally_neighbors,
)

logger = get_logger(__name__)


# Opening fence, optional language tag on the same line, body up to the
# closing fence (or the end of an unterminated reply).
_CODE_FENCE = re.compile(
    r"```[ \t]*(?:[a-z][\w+-]*)?[ \t]*\n?(.*?)(?:```|$)",
    re.DOTALL | re.IGNORECASE
)


def _strip_code_fence(content: str) -> str:
    text = content.strip()
    match = _CODE_FENCE.search(text)
    return match.group(1).strip() if match else text


class PatternClassifier:
    """
    Taxonomy-driven classifier backed by a generative model.

    The system prompt is built once per taxonomy. No retries: a failed
    call raises ClassifierUnavailable, an unparseable reply raises
    MalformedResponse.
    """

    def __init__(
        self,
        generator: ITextGenerator,
        groups: Taxonomy = DEFAULT_SUPPORT_GROUPS,
        temperature: Optional[float] = None
    ):
        if not groups:
            raise ValueError("PatternClassifier needs at least one support group")
        self._generator = generator
        self._groups = tuple(groups)
        self._temperature = settings.llm_temperature if temperature is None else temperature
        self._canonical_names: Dict[str, str] = {
            group.name.strip().casefold(): group.name for group in self._groups
        }
        self._system_prompt = ClassificationPromptBuilder.build_system_prompt(self._groups)

    @property
    def groups(self) -> Taxonomy:
        return self._groups

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    async def classify(self, subject: str, description: Optional[str]) -> ClassificationResult:
        """
        Classify a ticket into one of the taxonomy's groups.

        Raises:
            ClassifierUnavailable: If the generative call fails
            MalformedResponse: If the reply is not the expected JSON shape
        """
        start_time = time.perf_counter()
        user_prompt = ClassificationPromptBuilder.build_user_prompt(subject, description)

        try:
            content = await self._generator.complete(
                self._system_prompt, user_prompt, self._temperature
            )
        except ProviderError as e:
            raise ClassifierUnavailable(f"Generative call failed: {e.message}")

        result = self.parse(content)
        latency_ms = int((time.perf_counter() - start_time) * 1000)

        logger.info(
            "Pattern classification completed",
            extra={
                "group": result.primary_group.name,
                "confidence": result.primary_group.confidence,
                "alternatives": len(result.alternative_groups),
                "latency_ms": latency_ms
            }
        )

        return ClassificationResult(
            primary_group=result.primary_group,
            alternative_groups=result.alternative_groups,
            model_used=self._generator.model_name,
            latency_ms=latency_ms,
        )

    def parse(self, content: str) -> ClassificationResult:
        """
        Parse a raw reply into a ClassificationResult.

        The primary group must belong to the taxonomy. Alternatives that
        repeat the primary, repeat each other or fall outside the taxonomy
        are dropped; at most two are kept.
        """
        try:
            data = json.loads(_strip_code_fence(content))
        except json.JSONDecodeError as e:
            raise MalformedResponse(f"Reply is not valid JSON: {e}", raw_content=content)

        if not isinstance(data, dict):
            raise MalformedResponse("Reply is not a JSON object", raw_content=content)

        try:
            reply = PatternReply.model_validate(data)
        except ValidationError as e:
            raise MalformedResponse(
                f"Reply does not match the classification shape: {e.error_count()} error(s)",
                raw_content=content,
                details={"errors": e.errors(include_url=False, include_input=False)}
            )

        primary_name = self._canonical(reply.primary_group.name)
        if primary_name is None:
            raise MalformedResponse(
                f"Unknown support group: {reply.primary_group.name!r}",
                raw_content=content
            )

        primary = GroupScore(
            name=primary_name,
            confidence=round_half_up(reply.primary_group.confidence),
            reasoning=reply.primary_group.reasoning,
        )

        alternatives: List[GroupScore] = []
        seen = {primary_name}
        for candidate in reply.alternative_groups:
            name = self._canonical(candidate.name)
            if name is None or name in seen:
                logger.debug("Dropping alternative group", extra={"group": candidate.name})
                continue
            seen.add(name)
            alternatives.append(GroupScore(
                name=name,
                confidence=round_half_up(candidate.confidence),
                reasoning=candidate.reasoning,
            ))
            if len(alternatives) == 2:
                break

        return ClassificationResult(primary_group=primary, alternative_groups=tuple(alternatives))

    def _canonical(self, name: str) -> Optional[str]:
        return self._canonical_names.get(name.strip().casefold())


class SimilarityClassifier:
    """
    Nearest-neighbour classifier over embedded historical tickets.

    classify() never raises: store, schema, history and provider problems
    all come back as SimilarityOutcome.failure(reason, error_code).
    """

    def __init__(
        self,
        store: IHistoricalTicketStore,
        embedder: IEmbeddingProvider,
        threshold: Optional[float] = None,
        top_k: Optional[int] = None
    ):
        self._store = store
        self._embedder = embedder
        self._readiness = StoreReadiness(store)
        self._threshold = settings.similarity_threshold if threshold is None else threshold
        self._top_k = settings.similarity_top_k if top_k is None else top_k

    async def classify(self, subject: str, description: Optional[str]) -> SimilarityOutcome:
        try:
            return await self._classify(subject, description)
        except ApplicationException as e:
            logger.info(
                "Similarity classification unavailable",
                extra={"reason": e.message, "error_code": type(e).__name__}
            )
            return SimilarityOutcome.failure(e.message, type(e).__name__)
        except Exception as e:
            logger.exception("Unexpected error in similarity classification")
            return SimilarityOutcome.failure(
                f"General error in vector similarity search: {e}", "UnexpectedError"
            )

    async def _classify(self, subject: str, description: Optional[str]) -> SimilarityOutcome:
        await self._readiness.ensure_ready()

        vector = await self._embedder.embed(build_ticket_text(subject, description))

        with log_latency(logger, "nearest_neighbors", limit=self._top_k):
            neighbors = await self._store.nearest_neighbors(vector, self._threshold, self._top_k)

        matches = tally_neighbors(neighbors)
        logger.info(
            "Similarity classification completed",
            extra={
                "neighbors": len(neighbors),
                "groups": len(matches),
                "top_group": matches[0].name if matches else None
            }
        )
        return SimilarityOutcome(success=True, results=tuple(matches), matched_count=len(neighbors))
