"""
Triage Application Services
============================

Application services for ticket routing.

Orchestrates the classifiers, the reconciliation policy and the
historical store.
"""

import asyncio
import time
from typing import List, Optional

from helpdesk.config import StoreAttribute, settings
from helpdesk.core import (
    ClassificationUnavailable,
    ClassifierUnavailable,
    MalformedResponse,
    ProviderError,
    StoreUnavailable,
    ValidationException,
)
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.triage.application.classifiers import PatternClassifier, SimilarityClassifier
from helpdesk.triage.application.interfaces import IEmbeddingProvider, IHistoricalTicketStore
from helpdesk.triage.application.readiness import StoreReadiness
from helpdesk.triage.domain import (
    DEFAULT_POLICY,
    BackfillItemResult,
    BackfillReport,
    ReconciliationPolicy,
    StoreStatus,
    TicketClassification,
    reconcile,
    recommend_from_history,
)

logger = get_logger(__name__)


class TicketClassificationService:
    """
    Routes a ticket to a support group.

    Runs both classifiers concurrently and reconciles once both finish.
    """

    def __init__(
        self,
        pattern_classifier: PatternClassifier,
        similarity_classifier: SimilarityClassifier,
        policy: ReconciliationPolicy = DEFAULT_POLICY
    ):
        self._pattern = pattern_classifier
        self._similarity = similarity_classifier
        self._policy = policy

    async def classify_ticket(
        self,
        subject: str,
        description: Optional[str] = None
    ) -> TicketClassification:
        """
        Classify a ticket with both signals and reconcile them.

        When only the pattern classifier fails and history produced matches,
        the recommendation comes from history alone.

        Raises:
            ValidationException: If the subject is empty
            ClassificationUnavailable: If neither signal is usable
        """
        if not subject or not subject.strip():
            raise ValidationException("Subject is required")

        start_time = time.perf_counter()
        pattern_result, similarity = await asyncio.gather(
            self._pattern.classify(subject, description),
            self._similarity.classify(subject, description),
            return_exceptions=True,
        )

        if isinstance(similarity, BaseException):
            raise similarity

        if isinstance(pattern_result, (ClassifierUnavailable, MalformedResponse)):
            logger.warning(
                "Pattern classification failed",
                extra={
                    "error_type": type(pattern_result).__name__,
                    "error": pattern_result.message,
                    "similarity_success": similarity.success
                }
            )
            if not similarity.results:
                raise ClassificationUnavailable(
                    pattern_error=pattern_result.message,
                    similarity_error=similarity.error,
                )
            final = recommend_from_history(similarity)
            return TicketClassification(
                pattern=None,
                similarity=similarity,
                final=final,
                pattern_error=pattern_result.message,
            )

        if isinstance(pattern_result, BaseException):
            raise pattern_result

        final = reconcile(pattern_result, similarity, self._policy)

        logger.info(
            "Ticket classified",
            extra={
                "group": final.group,
                "confidence": final.confidence,
                "source": final.source,
                "similarity_success": similarity.success,
                "latency_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )

        return TicketClassification(pattern=pattern_result, similarity=similarity, final=final)


class EmbeddingBackfillService:
    """
    Embeds historical tickets that have no embedding yet.

    Works in batches; one ticket failing does not stop the batch.
    """

    def __init__(
        self,
        store: IHistoricalTicketStore,
        embedder: IEmbeddingProvider,
        batch_size: Optional[int] = None
    ):
        self._store = store
        self._embedder = embedder
        self._readiness = StoreReadiness(store)
        self._batch_size = settings.backfill_batch_size if batch_size is None else batch_size

    async def backfill(self, batch_size: Optional[int] = None) -> BackfillReport:
        """
        Embed one batch of tickets.

        Raises:
            StoreUnavailable: If the store is unreachable or cannot hold embeddings
        """
        await self._readiness.ensure_vector_search()
        await self._readiness.ensure_embedding_attribute()

        tickets = await self._store.list_missing_attribute(
            StoreAttribute.EMBEDDING, self._batch_size if batch_size is None else batch_size
        )

        results: List[BackfillItemResult] = []
        for ticket in tickets:
            try:
                vector = await self._embedder.embed(ticket.text)
                await self._store.update_embedding(ticket.id, vector)
            except (ProviderError, StoreUnavailable) as e:
                logger.warning(
                    "Failed to embed historical ticket",
                    extra={"ticket_id": ticket.id, "error": e.message}
                )
                results.append(BackfillItemResult(id=ticket.id, success=False, error=e.message))
            else:
                results.append(BackfillItemResult(id=ticket.id, success=True))

        report = BackfillReport(results=tuple(results))
        logger.info(
            "Embedding backfill completed",
            extra={
                "processed": report.processed,
                "successful": report.successful,
                "failed": report.failed
            }
        )
        return report


class StoreSetupService:
    """Explicit, idempotent preparation of the historical store."""

    def __init__(self, store: IHistoricalTicketStore):
        self._readiness = StoreReadiness(store)

    async def prepare_store(self) -> StoreStatus:
        """
        Enable vector search and the embedding column, then report state.

        Raises:
            StoreUnavailable: If the store is unreachable or cannot be repaired
        """
        status = await self._readiness.prepare()
        logger.info(
            "Historical store prepared",
            extra={
                "ticket_count": status.ticket_count,
                "embedded_count": status.embedded_count
            }
        )
        return status
