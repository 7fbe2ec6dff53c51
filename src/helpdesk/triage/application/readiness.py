"""
Historical Store Readiness
==========================

Checks that the historical store can serve similarity search, repairing
the schema where possible.

Each repair follows the same sequence: check, repair once, check again.
Repairs are "create if absent", so concurrent callers may race safely and
a repeated call only ever narrows the remaining gap.
"""

from typing import Awaitable, Callable

from helpdesk.config import StoreAttribute, StoreCapability
from helpdesk.core import InsufficientHistory, StoreUnavailable
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.triage.application.interfaces import IHistoricalTicketStore
from helpdesk.triage.domain import StoreStatus

logger = get_logger(__name__)


class StoreReadiness:
    """Readiness checks and self-healing for an IHistoricalTicketStore."""

    def __init__(self, store: IHistoricalTicketStore):
        self._store = store

    async def ensure_vector_search(self) -> None:
        capability = StoreCapability.VECTOR_SEARCH
        await self._heal(
            check=lambda: self._store.has_capability(capability),
            repair=lambda: self._store.enable_capability(capability),
            what=f"capability '{capability}'",
        )

    async def ensure_embedding_attribute(self) -> None:
        attribute = StoreAttribute.EMBEDDING
        await self._heal(
            check=lambda: self._store.has_attribute(attribute),
            repair=lambda: self._store.add_attribute(attribute),
            what=f"attribute '{attribute}'",
        )

    async def ensure_ready(self) -> StoreStatus:
        """
        Make sure similarity search has something to search.

        Raises:
            StoreUnavailable: Store unreachable or schema could not be repaired
            InsufficientHistory: No tickets, or none carrying both an
                embedding and an assigned group
        """
        ticket_count = await self._store.count()
        if ticket_count == 0:
            raise InsufficientHistory("No historical tickets available")

        await self.ensure_vector_search()
        await self.ensure_embedding_attribute()

        embedded = await self._store.count_with_non_null_attribute(StoreAttribute.EMBEDDING)
        if embedded == 0:
            raise InsufficientHistory("No tickets with embeddings")

        if await self._store.count_labeled_embedded() == 0:
            raise InsufficientHistory("No labeled tickets with embeddings")

        return StoreStatus(
            reachable=True,
            ticket_count=ticket_count,
            vector_search_enabled=True,
            embedding_attribute_present=True,
            embedded_count=embedded,
        )

    async def prepare(self) -> StoreStatus:
        """
        Enable vector search and the embedding attribute without
        requiring any history to exist yet.

        Raises:
            StoreUnavailable: Store unreachable or schema could not be repaired
        """
        ticket_count = await self._store.count()
        await self.ensure_vector_search()
        await self.ensure_embedding_attribute()
        embedded = await self._store.count_with_non_null_attribute(StoreAttribute.EMBEDDING)

        return StoreStatus(
            reachable=True,
            ticket_count=ticket_count,
            vector_search_enabled=True,
            embedding_attribute_present=True,
            embedded_count=embedded,
        )

    async def _heal(
        self,
        check: Callable[[], Awaitable[bool]],
        repair: Callable[[], Awaitable[None]],
        what: str,
    ) -> None:
        if await check():
            return

        logger.info(f"Historical store is missing {what}, creating it")
        try:
            await repair()
        except StoreUnavailable as e:
            raise StoreUnavailable(f"Store {what} could not be created: {e.message}")

        if not await check():
            raise StoreUnavailable(f"Store {what} still missing after repair")

        logger.info(f"Historical store {what} created")
