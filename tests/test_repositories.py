"""Tests for the PostgreSQL historical ticket store, against a recording session."""

from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from helpdesk.config import StoreAttribute, StoreCapability
from helpdesk.core import StoreUnavailable
from helpdesk.triage.domain import NeighborMatch
from helpdesk.triage.infrastructure import SQLAlchemyHistoricalTicketStore, to_vector_literal


class FakeResult:
    def __init__(self, scalar=None, rows=()):
        self._scalar = scalar
        self._rows = list(rows)

    def scalar_one(self):
        return self._scalar

    def __iter__(self):
        return iter(self._rows)


class RecordingSession:
    """Records every statement and its bound parameters."""

    def __init__(self, results=(), error=None):
        self.results = list(results)
        self.error = error
        self.executed = []

    async def execute(self, statement, params=None):
        self.executed.append((str(statement), params))
        if self.error is not None:
            raise self.error
        return self.results.pop(0) if self.results else FakeResult()


def store_for(session: RecordingSession, dimension: int = 3) -> SQLAlchemyHistoricalTicketStore:
    @asynccontextmanager
    async def factory():
        yield session

    return SQLAlchemyHistoricalTicketStore(session_factory=factory, dimension=dimension)


class TestErrorMapping:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        OperationalError("SELECT 1", {}, Exception("connection refused")),
        OSError("Connection refused"),
    ])
    async def test_driver_errors_become_store_unavailable(self, error):
        store = store_for(RecordingSession(error=error))

        with pytest.raises(StoreUnavailable) as exc_info:
            await store.count()

        assert exc_info.value.message.startswith("Historical store count failed:")
        assert "connection refused" in exc_info.value.message.lower()

    @pytest.mark.asyncio
    async def test_uninitialised_database_is_store_unavailable(self, monkeypatch):
        import helpdesk.infrastructure.database as database

        monkeypatch.setattr(database, "_session_maker", None)
        store = SQLAlchemyHistoricalTicketStore(dimension=3)

        with pytest.raises(StoreUnavailable) as exc_info:
            await store.has_capability(StoreCapability.VECTOR_SEARCH)

        assert "Database not initialized" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_each_operation_maps_failures(self):
        store = store_for(RecordingSession(error=OSError("reset by peer")))

        with pytest.raises(StoreUnavailable, match="similarity search"):
            await store.nearest_neighbors([0.1, 0.2, 0.3], 0.5, 5)
        with pytest.raises(StoreUnavailable, match="update embedding"):
            await store.update_embedding(1, [0.1, 0.2, 0.3])
        with pytest.raises(StoreUnavailable, match="labeled embedded count"):
            await store.count_labeled_embedded()


class TestGuards:

    @pytest.mark.asyncio
    async def test_unknown_capability_rejected(self):
        session = RecordingSession()
        store = store_for(session)

        with pytest.raises(ValueError, match="Unsupported store capability"):
            await store.has_capability("full-text")
        with pytest.raises(ValueError, match="Unsupported store capability"):
            await store.enable_capability("full-text")

        assert session.executed == []

    @pytest.mark.asyncio
    async def test_unknown_attribute_rejected(self):
        session = RecordingSession()
        store = store_for(session)

        for call in (
            store.has_attribute("priority"),
            store.add_attribute("priority"),
            store.count_with_non_null_attribute("priority"),
            store.list_missing_attribute("priority", 10),
        ):
            with pytest.raises(ValueError, match="Unsupported ticket attribute"):
                await call

        assert session.executed == []


class TestStatements:

    @pytest.mark.asyncio
    async def test_nearest_neighbors_binds_threshold_and_limit(self):
        session = RecordingSession(results=[FakeResult(rows=[
            SimpleNamespace(assigned_group="Security", similarity=0.91),
            SimpleNamespace(assigned_group="Network Operations", similarity=0.72),
        ])])

        matches = await store_for(session).nearest_neighbors([0.1, 0.2, 0.3], 0.6, 4)

        sql, params = session.executed[0]
        assert params == {"query": "[0.1,0.2,0.3]", "threshold": 0.6, "limit": 4}
        assert "assigned_group IS NOT NULL" in sql
        assert "> :threshold" in sql
        assert "LIMIT :limit" in sql
        assert matches == [NeighborMatch("Security", 0.91), NeighborMatch("Network Operations", 0.72)]

    @pytest.mark.asyncio
    async def test_list_missing_attribute(self):
        session = RecordingSession(results=[FakeResult(rows=[
            SimpleNamespace(
                id=7, ticket_id="INC0007", subject="Printer jam",
                description=None, assigned_group="Desktop Support",
            ),
        ])])

        tickets = await store_for(session).list_missing_attribute(StoreAttribute.EMBEDDING, 25)

        sql, params = session.executed[0]
        assert params == {"limit": 25}
        assert "embedding IS NULL" in sql
        assert [(t.id, t.ticket_id, t.assigned_group) for t in tickets] == [
            (7, "INC0007", "Desktop Support")
        ]
        assert tickets[0].embedding is None

    @pytest.mark.asyncio
    async def test_update_embedding_binds_vector_literal(self):
        session = RecordingSession()

        await store_for(session).update_embedding(42, [1, 0.5, -0.25])

        sql, params = session.executed[0]
        assert sql.startswith("UPDATE ticket_history SET embedding")
        assert params == {"embedding": to_vector_literal([1, 0.5, -0.25]), "id": 42}
        assert params["embedding"] == "[1.0,0.5,-0.25]"

    @pytest.mark.asyncio
    async def test_add_attribute_uses_configured_dimension(self):
        session = RecordingSession()

        await store_for(session, dimension=1536).add_attribute(StoreAttribute.EMBEDDING)

        column_ddl, index_ddl = (sql for sql, _ in session.executed)
        assert "ADD COLUMN IF NOT EXISTS embedding vector(1536)" in column_ddl
        assert "vector_cosine_ops" in index_ddl

    @pytest.mark.asyncio
    async def test_counts(self):
        session = RecordingSession(results=[
            FakeResult(scalar=12), FakeResult(scalar=9), FakeResult(scalar=6),
        ])
        store = store_for(session)

        assert await store.count() == 12
        assert await store.count_with_non_null_attribute(StoreAttribute.EMBEDDING) == 9
        assert await store.count_labeled_embedded() == 6

        labeled_sql = session.executed[2][0]
        assert "embedding IS NOT NULL AND assigned_group IS NOT NULL" in labeled_sql

    @pytest.mark.asyncio
    async def test_capability_and_attribute_checks(self):
        session = RecordingSession(results=[FakeResult(scalar=True), FakeResult(scalar=False)])
        store = store_for(session)

        assert await store.has_capability(StoreCapability.VECTOR_SEARCH) is True
        assert await store.has_attribute(StoreAttribute.EMBEDDING) is False

        assert "pg_extension" in session.executed[0][0]
        assert session.executed[1][1] == {"table": "ticket_history", "column": "embedding"}
