"""
Triage Application Interfaces
=============================

Abstractions the triage services depend on (Dependency Inversion).
Concrete adapters live in triage.infrastructure.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from helpdesk.triage.domain import HistoricalTicket, NeighborMatch


class ITextGenerator(ABC):
    """Generative text provider."""

    @property
    def model_name(self) -> str:
        return "unknown"

    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        """
        Return the model's reply text.

        Raises:
            ProviderError: If the call fails
        """


class IEmbeddingProvider(ABC):
    """Embedding provider."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """
        Return a fixed-length vector for the text.

        Raises:
            ProviderError: If the call fails
        """


class IHistoricalTicketStore(ABC):
    """
    Read access to previously labeled tickets, plus the schema operations
    needed to make vector search possible.

    Every method raises StoreUnavailable when the store cannot be reached.
    """

    @abstractmethod
    async def count(self) -> int:
        """Number of historical tickets."""

    @abstractmethod
    async def has_capability(self, capability: str) -> bool:
        """Whether a store capability (e.g. vector-search) is enabled."""

    @abstractmethod
    async def enable_capability(self, capability: str) -> None:
        """Enable a capability if absent."""

    @abstractmethod
    async def has_attribute(self, attribute: str) -> bool:
        """Whether stored tickets carry the attribute (e.g. embedding)."""

    @abstractmethod
    async def add_attribute(self, attribute: str) -> None:
        """Add the attribute to stored tickets if absent."""

    @abstractmethod
    async def count_with_non_null_attribute(self, attribute: str) -> int:
        """Number of tickets where the attribute is set."""

    @abstractmethod
    async def count_labeled_embedded(self) -> int:
        """Number of tickets carrying both an assigned group and an embedding."""

    @abstractmethod
    async def nearest_neighbors(
        self,
        vector: Sequence[float],
        threshold: float,
        limit: int
    ) -> List[NeighborMatch]:
        """
        Labeled tickets with cosine similarity above threshold,
        most similar first, at most limit of them.
        """

    @abstractmethod
    async def list_missing_attribute(self, attribute: str, limit: int) -> List[HistoricalTicket]:
        """Tickets where the attribute is still null."""

    @abstractmethod
    async def update_embedding(self, ticket_id: int, vector: Sequence[float]) -> None:
        """Write an embedding back to a ticket."""
