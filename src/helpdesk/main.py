"""
Helpdesk Router - Main Application
===================================

Routes helpdesk tickets to the support group that should handle them.

Modules:
- Triage: pattern-based (LLM) and historical (pgvector) classification,
  reconciled into one recommendation
- Chat: bounded conversation history for the L1 assistant

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Classifiers, services and DTOs
- Domain: Entities, taxonomy and reconciliation rules
- Infrastructure: Database, LLM client, historical ticket store
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

# Configuration and Core
from helpdesk.config import Settings, settings
from helpdesk.core import ApplicationException, ConfigurationException, StoreUnavailable

# Infrastructure
from helpdesk.infrastructure.database import close_database, create_tables, init_database
from helpdesk.infrastructure.llm import create_llm_client

# Triage module
from helpdesk.triage.application import (
    EmbeddingBackfillService,
    PatternClassifier,
    SimilarityClassifier,
    StoreSetupService,
    TicketClassificationService,
)
from helpdesk.triage.domain import ReconciliationPolicy, resolve_taxonomy
from helpdesk.triage.infrastructure import (
    LLMEmbeddingProvider,
    LLMTextGenerator,
    SQLAlchemyHistoricalTicketStore,
)
from helpdesk.triage.interfaces import triage_router

# Shared
from helpdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from helpdesk.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


def build_services(app: FastAPI, config: Settings) -> None:
    """
    Wire the triage services onto app.state.

    The store setup service only needs the database. Classification and
    backfill also need the LLM client and stay None when it is not configured.
    """
    store = SQLAlchemyHistoricalTicketStore(dimension=config.embedding_dimension)
    groups = resolve_taxonomy(config.support_groups_path)

    app.state.settings = config
    app.state.historical_store = store
    app.state.support_groups = groups
    app.state.setup_service = StoreSetupService(store)
    app.state.llm_client = None
    app.state.classification_service = None
    app.state.backfill_service = None

    try:
        llm_client = create_llm_client(config.openai_api_key)
    except ConfigurationException as e:
        logger.warning(f"LLM client not configured - classification disabled: {e.message}")
        return

    generator = LLMTextGenerator(llm_client, max_tokens=config.llm_max_tokens)
    embedder = LLMEmbeddingProvider(llm_client, dimension=config.embedding_dimension)

    app.state.llm_client = llm_client
    app.state.classification_service = TicketClassificationService(
        pattern_classifier=PatternClassifier(
            generator, groups=groups, temperature=config.llm_temperature
        ),
        similarity_classifier=SimilarityClassifier(
            store,
            embedder,
            threshold=config.similarity_threshold,
            top_k=config.similarity_top_k
        ),
        policy=ReconciliationPolicy.from_settings(config)
    )
    app.state.backfill_service = EmbeddingBackfillService(
        store, embedder, batch_size=config.backfill_batch_size
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create database tables
    4. Load the support group taxonomy and wire services

    SHUTDOWN:
    1. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Helpdesk Router", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database(settings)

    # If the database is not reachable the server still starts; the
    # similarity signal reports the store as unavailable per request.
    logger.info("Creating database tables")
    try:
        await create_tables()
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    logger.info("Wiring triage services")
    build_services(app, settings)

    logger.info("Helpdesk Router started successfully", extra={
        "support_groups": len(app.state.support_groups),
        "classification_enabled": app.state.classification_service is not None
    })

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Helpdesk Router")
    await close_database()
    logger.info("Helpdesk Router shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Helpdesk Router API",
    description="""
    ## Helpdesk Ticket Routing

    Recommends which support group should handle a ticket.

    ---

    ### Triage Module

    **Endpoints:**
    - `POST /triage/classify` - Recommend a support group for a ticket
    - `POST /triage/embeddings/backfill` - Embed historical tickets
    - `POST /triage/setup` - Enable pgvector and the embedding column

    **Signals:**
    - Pattern-based: LLM prompted with the support group taxonomy
    - Vector similarity: vote among similar resolved tickets (pgvector)

    **Final recommendation sources:**

    | Source | When |
    |--------|------|
    | pattern-based | No usable history, or history disagrees with low confidence |
    | combined | Both signals agree on the top group |
    | pattern-weighted | History ranks the pattern group lower |
    | history-weighted | Confident history disagrees with the pattern |

    ---
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(triage_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "historical_store": "available (1200 tickets)",
                        "llm_client": "available",
                        "support_groups": 7
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    The service reports healthy even when the store is down, since
    classification degrades to the pattern signal alone.
    """
    state = request.app.state
    checks = {
        "historical_store": "not_configured",
        "llm_client": "available" if getattr(state, "llm_client", None) else "not_configured",
        "support_groups": len(getattr(state, "support_groups", None) or ())
    }

    store = getattr(state, "historical_store", None)
    if store is not None:
        try:
            count = await store.count()
            checks["historical_store"] = f"available ({count} tickets)"
        except StoreUnavailable as e:
            checks["historical_store"] = f"error: {e.message}"

    config: Optional[Settings] = getattr(state, "settings", None) or settings
    return {
        "status": "healthy",
        "version": config.app_version,
        "environment": config.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Helpdesk Router",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "triage": {
                "prefix": "/triage",
                "endpoints": [
                    "POST /triage/classify - Recommend a support group",
                    "POST /triage/embeddings/backfill - Embed historical tickets",
                    "POST /triage/setup - Prepare the historical store"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
