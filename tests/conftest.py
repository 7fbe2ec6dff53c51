"""Pytest configuration and shared fakes."""

import json
from typing import Dict, List, Optional, Sequence

import pytest

from helpdesk.config import StoreAttribute, StoreCapability
from helpdesk.core import ProviderError, StoreUnavailable
from helpdesk.triage.application import (
    IEmbeddingProvider,
    IHistoricalTicketStore,
    ITextGenerator,
    PatternClassifier,
    SimilarityClassifier,
    TicketClassificationService,
)
from helpdesk.triage.domain import HistoricalTicket, NeighborMatch


def pattern_reply(
    primary: str,
    confidence: float = 80,
    alternatives: Sequence[tuple] = (),
    fenced: bool = False
) -> str:
    """JSON reply in the shape the classification prompt asks for."""
    body = json.dumps({
        "primaryGroup": {"name": primary, "confidence": confidence, "reasoning": f"Looks like {primary}"},
        "alternativeGroups": [
            {"name": name, "confidence": conf, "reasoning": "maybe"} for name, conf in alternatives
        ],
    })
    return f"```json\n{body}\n```" if fenced else body


class FakeTextGenerator(ITextGenerator):
    """Returns a canned reply, or raises the configured error."""

    def __init__(self, reply: str = "", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[dict] = []

    @property
    def model_name(self) -> str:
        return "fake-model"

    async def complete(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "temperature": temperature,
        })
        if self.error is not None:
            raise self.error
        return self.reply


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Fixed-size vectors; texts listed in fail_on raise ProviderError."""

    def __init__(self, dimension: int = 3, fail_on: Sequence[str] = ()):
        self.dimension = dimension
        self.fail_on = set(fail_on)
        self.texts: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.texts.append(text)
        if text in self.fail_on:
            raise ProviderError(f"cannot embed {text!r}")
        return [float(len(text) % 7)] + [0.5] * (self.dimension - 1)


class FakeHistoricalTicketStore(IHistoricalTicketStore):
    """
    In-memory historical store.

    Can be put in each readiness state: missing capability, missing
    attribute, empty history, no embeddings, embeddings without an
    assigned group, or fully ready.
    """

    def __init__(
        self,
        tickets: Sequence[HistoricalTicket] = (),
        capability: bool = True,
        attribute: bool = True,
        neighbors: Sequence[NeighborMatch] = (),
        repair_sticks: bool = True,
        repair_error: bool = False,
        unreachable: bool = False,
    ):
        self.tickets: Dict[int, HistoricalTicket] = {t.id: t for t in tickets}
        self.embeddings: Dict[int, List[float]] = {
            t.id: t.embedding for t in tickets if t.embedding is not None
        }
        self.capability = capability
        self.attribute = attribute
        self.neighbors = list(neighbors)
        self.repair_sticks = repair_sticks
        self.repair_error = repair_error
        self.unreachable = unreachable
        self.fail_updates_for: set = set()
        self.calls: Dict[str, int] = {}
        self.search_args: List[tuple] = []

    def _touch(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        if self.unreachable:
            raise StoreUnavailable(f"Historical store {name} failed: connection refused")

    async def count(self) -> int:
        self._touch("count")
        return len(self.tickets)

    async def has_capability(self, capability: str) -> bool:
        self._touch("has_capability")
        assert capability == StoreCapability.VECTOR_SEARCH
        return self.capability

    async def enable_capability(self, capability: str) -> None:
        self._touch("enable_capability")
        if self.repair_error:
            raise StoreUnavailable("permission denied to create extension")
        if self.repair_sticks:
            self.capability = True

    async def has_attribute(self, attribute: str) -> bool:
        self._touch("has_attribute")
        assert attribute == StoreAttribute.EMBEDDING
        return self.attribute

    async def add_attribute(self, attribute: str) -> None:
        self._touch("add_attribute")
        if self.repair_error:
            raise StoreUnavailable("permission denied to alter table")
        if self.repair_sticks:
            self.attribute = True

    async def count_with_non_null_attribute(self, attribute: str) -> int:
        self._touch("count_with_non_null_attribute")
        return len(self.embeddings) if self.attribute else 0

    async def count_labeled_embedded(self) -> int:
        self._touch("count_labeled_embedded")
        if not self.attribute:
            return 0
        return sum(1 for t_id in self.embeddings if self.tickets[t_id].assigned_group)

    async def nearest_neighbors(
        self,
        vector: Sequence[float],
        threshold: float,
        limit: int
    ) -> List[NeighborMatch]:
        self._touch("nearest_neighbors")
        self.search_args.append((list(vector), threshold, limit))
        matches = [n for n in self.neighbors if n.similarity > threshold]
        matches.sort(key=lambda n: n.similarity, reverse=True)
        return matches[:limit]

    async def list_missing_attribute(self, attribute: str, limit: int) -> List[HistoricalTicket]:
        self._touch("list_missing_attribute")
        missing = [t for t_id, t in sorted(self.tickets.items()) if t_id not in self.embeddings]
        return missing[:limit]

    async def update_embedding(self, ticket_id: int, vector: Sequence[float]) -> None:
        self._touch("update_embedding")
        if ticket_id in self.fail_updates_for:
            raise StoreUnavailable(f"Historical store update embedding failed for {ticket_id}")
        self.embeddings[ticket_id] = list(vector)


def make_tickets(
    count: int,
    embedded: bool = True,
    assigned_group: Optional[str] = "Network Operations"
) -> List[HistoricalTicket]:
    return [
        HistoricalTicket(
            id=i,
            ticket_id=f"INC{i:04d}",
            subject=f"Historical ticket {i}",
            description="Something broke",
            assigned_group=assigned_group,
            embedding=[0.1, 0.2, 0.3] if embedded else None,
        )
        for i in range(1, count + 1)
    ]


def neighbors_for(*groups: str) -> List[NeighborMatch]:
    """Neighbours in the given order, most similar first."""
    return [
        NeighborMatch(group=group, similarity=0.95 - i * 0.05)
        for i, group in enumerate(groups)
    ]


@pytest.fixture
def generator() -> FakeTextGenerator:
    return FakeTextGenerator(reply=pattern_reply("Network Operations", 80))


@pytest.fixture
def embedder() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def ready_store() -> FakeHistoricalTicketStore:
    return FakeHistoricalTicketStore(
        tickets=make_tickets(10),
        neighbors=neighbors_for(
            "Network Operations", "Network Operations", "Network Operations",
            "Network Operations", "Security",
        ),
    )


@pytest.fixture
def classification_service(generator, ready_store, embedder) -> TicketClassificationService:
    return TicketClassificationService(
        pattern_classifier=PatternClassifier(generator),
        similarity_classifier=SimilarityClassifier(ready_store, embedder, threshold=0.5, top_k=5),
    )
