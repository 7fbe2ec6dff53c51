"""
Triage Controllers (API Routes)
================================

FastAPI routes for ticket triage endpoints.

Controllers delegate to application services.
"""

import time

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.triage.application import (
    BackfillResponse,
    ClassifyTicketRequest,
    ClassifyTicketResponse,
    EmbeddingBackfillService,
    StoreSetupService,
    StoreStatusResponse,
    TicketClassificationService,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/triage", tags=["Ticket Triage"])


# ========== Example payloads for Swagger ==========

CLASSIFY_RESPONSE_EXAMPLE = {
    "pattern_based_classification": {
        "primary_group": {
            "name": "Network Operations",
            "confidence": 85,
            "reasoning": "VPN connectivity from a remote location."
        },
        "alternative_groups": [
            {"name": "Security", "confidence": 40, "reasoning": "Could involve MFA on the VPN."}
        ]
    },
    "pattern_error": None,
    "vector_similarity_classification": {
        "recommendations": [{"name": "Network Operations", "confidence": 80, "count": 4}],
        "similar_tickets_count": 5,
        "confidence": 80,
        "success": True,
        "error": None,
        "error_code": None
    },
    "final_recommendation": {
        "group": "Network Operations",
        "confidence": 82,
        "source": "combined",
        "reasoning": "Both pattern analysis and historical data agree on this group. "
                     "Based on 4 similar historical tickets."
    },
    "processing_time_ms": 1400
}


# ========== Dependencies ==========

def get_classification_service(request: Request) -> TicketClassificationService:
    """Classification service from app state."""
    service = getattr(request.app.state, "classification_service", None)
    if service is None:
        raise HTTPException(
            status_code=503,
            detail="Classification service not available - LLM not configured"
        )
    return service


def get_backfill_service(request: Request) -> EmbeddingBackfillService:
    service = getattr(request.app.state, "backfill_service", None)
    if service is None:
        raise HTTPException(
            status_code=503,
            detail="Embedding backfill not available - LLM or database not configured"
        )
    return service


def get_setup_service(request: Request) -> StoreSetupService:
    service = getattr(request.app.state, "setup_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Historical store not configured")
    return service


# ========== Route Handlers ==========

@router.post(
    "/classify",
    response_model=ClassifyTicketResponse,
    summary="Recommend a support group for a ticket",
    description="""
    Classify a ticket with two independent signals and reconcile them:

    - **Pattern-based**: LLM prompted with the support group taxonomy
    - **Vector similarity**: vote among the 5 most similar historical tickets

    The `final_recommendation.source` tells which rule produced the answer:
    `pattern-based`, `combined`, `pattern-weighted` or `history-weighted`.

    Historical similarity failing (no history, no embeddings, missing
    pgvector) never fails the request; it only shows up as
    `vector_similarity_classification.success = false`.
    """,
    responses={
        200: {
            "description": "Ticket classified",
            "content": {"application/json": {"example": CLASSIFY_RESPONSE_EXAMPLE}}
        },
        503: {"description": "Neither classifier produced a usable result"}
    }
)
async def classify_ticket(
    request: Request,
    payload: ClassifyTicketRequest,
    service: TicketClassificationService = Depends(get_classification_service)
):
    start_time = time.perf_counter()
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.info(
        "Classifying ticket",
        extra={
            "correlation_id": correlation_id,
            "subject_preview": payload.subject[:100]
        }
    )

    classification = await service.classify_ticket(payload.subject, payload.description)
    total_time = int((time.perf_counter() - start_time) * 1000)

    logger.info(
        "Ticket classification returned",
        extra={
            "correlation_id": correlation_id,
            "group": classification.final.group,
            "source": classification.final.source,
            "processing_time_ms": total_time
        }
    )

    return ClassifyTicketResponse.from_domain(classification, total_time)


@router.post(
    "/embeddings/backfill",
    response_model=BackfillResponse,
    summary="Embed historical tickets",
    description="""
    Generate embeddings for historical tickets that do not have one yet,
    one batch per call. Enables pgvector and the embedding column first
    when they are missing. Per-ticket failures are reported, not raised.
    """
)
async def backfill_embeddings(
    request: Request,
    batch_size: Optional[int] = Query(default=None, ge=1, le=500, description="Tickets to embed"),
    service: EmbeddingBackfillService = Depends(get_backfill_service)
):
    logger.info(
        "Embedding backfill requested",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "batch_size": batch_size
        }
    )

    report = await service.backfill(batch_size)
    return BackfillResponse.from_domain(report)


@router.post(
    "/setup",
    response_model=StoreStatusResponse,
    summary="Prepare the historical store for vector search",
    description="""
    Idempotently enable the pgvector extension and add the embedding column
    to `ticket_history`, then report the store state.
    """
)
async def setup_store(
    service: StoreSetupService = Depends(get_setup_service)
):
    status = await service.prepare_store()
    return StoreStatusResponse.from_domain(status)


# Export router for inclusion in main app
triage_router = router
