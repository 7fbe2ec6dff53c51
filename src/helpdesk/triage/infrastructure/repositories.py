"""
Triage Infrastructure Repositories
====================================

PostgreSQL + pgvector implementation of the historical ticket store.

Vector operations go through raw SQL: the embedding column may not exist
yet, so it is not part of the ORM model.
"""

from contextlib import AbstractAsyncContextManager
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config import StoreAttribute, StoreCapability, settings
from helpdesk.core import StoreUnavailable
from helpdesk.infrastructure.database import get_session_context
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.triage.application import IHistoricalTicketStore
from helpdesk.triage.domain import HistoricalTicket, NeighborMatch
from helpdesk.triage.infrastructure.models import HistoricalTicketModel

logger = get_logger(__name__)

T = TypeVar("T")
SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

TABLE = HistoricalTicketModel.__tablename__
EMBEDDING_INDEX = "ticket_embedding_idx"


def to_vector_literal(vector: Sequence[float]) -> str:
    """pgvector text representation, e.g. '[0.1,0.2,0.3]'."""
    return "[" + ",".join(str(float(v)) for v in vector) + "]"


def _require_capability(capability: str) -> None:
    if capability != StoreCapability.VECTOR_SEARCH:
        raise ValueError(f"Unsupported store capability: {capability}")


def _require_attribute(attribute: str) -> None:
    if attribute != StoreAttribute.EMBEDDING:
        raise ValueError(f"Unsupported ticket attribute: {attribute}")


class SQLAlchemyHistoricalTicketStore(IHistoricalTicketStore):
    """
    Historical ticket store backed by the ticket_history table.

    Every operation runs in its own session, so a failed statement never
    leaves a later one inside an aborted transaction.
    """

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        dimension: Optional[int] = None
    ):
        self._session_factory = session_factory or get_session_context
        self._dimension = dimension or settings.embedding_dimension

    async def _run(self, operation: str, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        try:
            async with self._session_factory() as session:
                return await work(session)
        except (SQLAlchemyError, OSError, RuntimeError) as e:
            # RuntimeError: database was never initialised
            logger.warning(
                "Historical store operation failed",
                extra={"operation": operation, "error": str(e)}
            )
            raise StoreUnavailable(f"Historical store {operation} failed: {e}")

    async def count(self) -> int:
        async def work(session: AsyncSession) -> int:
            result = await session.execute(
                select(func.count()).select_from(HistoricalTicketModel)
            )
            return int(result.scalar_one())

        return await self._run("count", work)

    async def has_capability(self, capability: str) -> bool:
        _require_capability(capability)

        async def work(session: AsyncSession) -> bool:
            result = await session.execute(
                text("SELECT EXISTS (SELECT 1 FROM pg_extension WHERE extname = 'vector')")
            )
            return bool(result.scalar_one())

        return await self._run("capability check", work)

    async def enable_capability(self, capability: str) -> None:
        _require_capability(capability)

        async def work(session: AsyncSession) -> None:
            await session.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))

        await self._run("enable vector extension", work)

    async def has_attribute(self, attribute: str) -> bool:
        _require_attribute(attribute)

        async def work(session: AsyncSession) -> bool:
            result = await session.execute(
                text(
                    "SELECT EXISTS ("
                    " SELECT 1 FROM information_schema.columns"
                    " WHERE table_schema = current_schema()"
                    " AND table_name = :table AND column_name = :column)"
                ),
                {"table": TABLE, "column": attribute},
            )
            return bool(result.scalar_one())

        return await self._run("attribute check", work)

    async def add_attribute(self, attribute: str) -> None:
        _require_attribute(attribute)
        dimension = int(self._dimension)

        async def work(session: AsyncSession) -> None:
            await session.execute(text(
                f"ALTER TABLE {TABLE} ADD COLUMN IF NOT EXISTS embedding vector({dimension})"
            ))
            await session.execute(text(
                f"CREATE INDEX IF NOT EXISTS {EMBEDDING_INDEX} ON {TABLE} "
                "USING ivfflat (embedding vector_cosine_ops)"
            ))

        await self._run("add embedding column", work)

    async def count_with_non_null_attribute(self, attribute: str) -> int:
        _require_attribute(attribute)

        async def work(session: AsyncSession) -> int:
            result = await session.execute(
                text(f"SELECT count(*) FROM {TABLE} WHERE embedding IS NOT NULL")
            )
            return int(result.scalar_one())

        return await self._run("embedded count", work)

    async def count_labeled_embedded(self) -> int:
        async def work(session: AsyncSession) -> int:
            result = await session.execute(
                text(
                    f"SELECT count(*) FROM {TABLE}"
                    " WHERE embedding IS NOT NULL AND assigned_group IS NOT NULL"
                )
            )
            return int(result.scalar_one())

        return await self._run("labeled embedded count", work)

    async def nearest_neighbors(
        self,
        vector: Sequence[float],
        threshold: float,
        limit: int
    ) -> List[NeighborMatch]:
        async def work(session: AsyncSession) -> List[NeighborMatch]:
            result = await session.execute(
                text(
                    "SELECT assigned_group,"
                    " 1 - (embedding <=> CAST(:query AS vector)) AS similarity"
                    f" FROM {TABLE}"
                    " WHERE embedding IS NOT NULL"
                    " AND assigned_group IS NOT NULL"
                    " AND 1 - (embedding <=> CAST(:query AS vector)) > :threshold"
                    " ORDER BY embedding <=> CAST(:query AS vector)"
                    " LIMIT :limit"
                ),
                {"query": to_vector_literal(vector), "threshold": threshold, "limit": limit},
            )
            return [
                NeighborMatch(group=row.assigned_group, similarity=float(row.similarity))
                for row in result
            ]

        return await self._run("similarity search", work)

    async def list_missing_attribute(self, attribute: str, limit: int) -> List[HistoricalTicket]:
        _require_attribute(attribute)

        async def work(session: AsyncSession) -> List[HistoricalTicket]:
            result = await session.execute(
                text(
                    "SELECT id, ticket_id, subject, description, assigned_group"
                    f" FROM {TABLE} WHERE embedding IS NULL ORDER BY id LIMIT :limit"
                ),
                {"limit": limit},
            )
            return [_to_domain(row) for row in result]

        return await self._run("list tickets without embeddings", work)

    async def update_embedding(self, ticket_id: int, vector: Sequence[float]) -> None:
        async def work(session: AsyncSession) -> None:
            await session.execute(
                text(f"UPDATE {TABLE} SET embedding = CAST(:embedding AS vector) WHERE id = :id"),
                {"embedding": to_vector_literal(vector), "id": ticket_id},
            )

        await self._run("update embedding", work)


def _to_domain(row: Any) -> HistoricalTicket:
    return HistoricalTicket(
        id=row.id,
        ticket_id=row.ticket_id,
        subject=row.subject,
        description=row.description,
        assigned_group=row.assigned_group,
    )
