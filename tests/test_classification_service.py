"""Tests for TicketClassificationService orchestration and degradation."""

import asyncio

import pytest

from helpdesk.core import ClassificationUnavailable, ProviderError, ValidationException
from helpdesk.triage.application import (
    PatternClassifier,
    SimilarityClassifier,
    TicketClassificationService,
)
from helpdesk.triage.domain import ReconciliationPolicy

from conftest import (
    FakeEmbeddingProvider,
    FakeHistoricalTicketStore,
    FakeTextGenerator,
    make_tickets,
    neighbors_for,
    pattern_reply,
)


def service_for(generator, store, embedder=None, policy=None) -> TicketClassificationService:
    kwargs = {"policy": policy} if policy else {}
    return TicketClassificationService(
        pattern_classifier=PatternClassifier(generator),
        similarity_classifier=SimilarityClassifier(
            store, embedder or FakeEmbeddingProvider(), threshold=0.5, top_k=5
        ),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_both_signals_agree(classification_service):
    classification = await classification_service.classify_ticket("Cannot connect to VPN", "From home")

    assert classification.pattern.primary_group.name == "Network Operations"
    assert classification.similarity.success is True
    assert classification.final.group == "Network Operations"
    # round(80 * 0.4 + 80 * 0.6)
    assert classification.final.confidence == 80
    assert classification.final.source == "combined"
    assert classification.pattern_error is None


@pytest.mark.asyncio
async def test_cold_start_uses_pattern_only(generator):
    service = service_for(generator, FakeHistoricalTicketStore())

    classification = await service.classify_ticket("VPN down")

    assert classification.similarity.success is False
    assert classification.similarity.error_code == "InsufficientHistory"
    assert classification.final.source == "pattern-based"
    assert classification.final.confidence == 80


@pytest.mark.asyncio
async def test_pattern_failure_falls_back_to_history(ready_store):
    generator = FakeTextGenerator(reply="not json at all")
    service = service_for(generator, ready_store)

    classification = await service.classify_ticket("VPN down", "")

    assert classification.pattern is None
    assert "not valid JSON" in classification.pattern_error
    assert classification.final.group == "Network Operations"
    assert classification.final.source == "history-weighted"
    assert classification.final.confidence == 80


@pytest.mark.asyncio
async def test_both_failing_raises():
    generator = FakeTextGenerator(error=ProviderError("timeout"))
    service = service_for(generator, FakeHistoricalTicketStore())

    with pytest.raises(ClassificationUnavailable) as exc_info:
        await service.classify_ticket("VPN down", "")

    assert "timeout" in exc_info.value.pattern_error
    assert exc_info.value.similarity_error == "No historical tickets available"


@pytest.mark.asyncio
async def test_pattern_failure_with_empty_search_raises():
    generator = FakeTextGenerator(reply=pattern_reply("Payroll"))
    store = FakeHistoricalTicketStore(tickets=make_tickets(3), neighbors=[])
    service = service_for(generator, store)

    with pytest.raises(ClassificationUnavailable):
        await service.classify_ticket("Salary missing", "")


@pytest.mark.asyncio
@pytest.mark.parametrize("subject", ["", "   "])
async def test_blank_subject_rejected(classification_service, subject):
    with pytest.raises(ValidationException):
        await classification_service.classify_ticket(subject, "description")


@pytest.mark.asyncio
async def test_policy_is_applied():
    generator = FakeTextGenerator(reply=pattern_reply("Server Operations", 65))
    store = FakeHistoricalTicketStore(
        tickets=make_tickets(5), neighbors=neighbors_for("Security", "Security", "Desktop Support")
    )

    default = await service_for(generator, store).classify_ticket("Disk full", "")
    lenient = await service_for(
        generator, store, policy=ReconciliationPolicy(history_confidence_bar=60)
    ).classify_ticket("Disk full", "")

    assert default.final.group == "Server Operations"
    assert lenient.final.group == "Security"


@pytest.mark.asyncio
async def test_classifiers_run_concurrently(ready_store):
    embedding_started = asyncio.Event()

    class WaitingGenerator(FakeTextGenerator):
        async def complete(self, system_prompt, user_prompt, temperature):
            # only returns if the similarity side got going in the meantime
            await asyncio.wait_for(embedding_started.wait(), timeout=1)
            return pattern_reply("Network Operations", 80)

    class SignallingEmbedder(FakeEmbeddingProvider):
        async def embed(self, text):
            embedding_started.set()
            return await super().embed(text)

    service = service_for(WaitingGenerator(), ready_store, SignallingEmbedder())

    classification = await service.classify_ticket("VPN down", "")

    assert classification.final.source == "combined"
