"""
Triage Infrastructure Layer
============================

Infrastructure implementations for ticket triage.

Contains:
- Models: SQLAlchemy ORM model for ticket_history
- Repositories: PostgreSQL + pgvector historical ticket store
- External: LLM adapters for text generation and embeddings
"""

from helpdesk.triage.infrastructure.models import HistoricalTicketModel
from helpdesk.triage.infrastructure.repositories import (
    SQLAlchemyHistoricalTicketStore,
    to_vector_literal,
)
from helpdesk.triage.infrastructure.external import (
    LLMEmbeddingProvider,
    LLMTextGenerator,
)

__all__ = [
    "HistoricalTicketModel",
    "SQLAlchemyHistoricalTicketStore",
    "to_vector_literal",
    "LLMEmbeddingProvider",
    "LLMTextGenerator",
]
