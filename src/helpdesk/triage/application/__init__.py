"""
Triage Application Layer
=========================

Application layer for ticket triage.

Contains:
- Interfaces: ports for the generative provider, embedder and historical store
- Classifiers: pattern and similarity classifiers
- Services: classification, embedding backfill and store setup
- DTOs: Data transfer objects for API serialization
"""

from helpdesk.triage.application.dto import (
    BackfillResponse,
    ClassifyTicketRequest,
    ClassifyTicketResponse,
    PatternReply,
    StoreStatusResponse,
)
from helpdesk.triage.application.interfaces import (
    IEmbeddingProvider,
    IHistoricalTicketStore,
    ITextGenerator,
)
from helpdesk.triage.application.readiness import StoreReadiness
from helpdesk.triage.application.classifiers import PatternClassifier, SimilarityClassifier
from helpdesk.triage.application.services import (
    EmbeddingBackfillService,
    StoreSetupService,
    TicketClassificationService,
)

__all__ = [
    # DTOs
    "BackfillResponse",
    "ClassifyTicketRequest",
    "ClassifyTicketResponse",
    "PatternReply",
    "StoreStatusResponse",
    # Interfaces
    "IEmbeddingProvider",
    "IHistoricalTicketStore",
    "ITextGenerator",
    # Classifiers and services
    "StoreReadiness",
    "PatternClassifier",
    "SimilarityClassifier",
    "EmbeddingBackfillService",
    "StoreSetupService",
    "TicketClassificationService",
]
