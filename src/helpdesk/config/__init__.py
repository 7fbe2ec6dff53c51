"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-router", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="PostgreSQL connection URL (async) holding ticket_history"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== OpenAI ==========
    openai_api_key: Optional[str] = Field(
        default=None,
        description="OpenAI API key for chat completions and embeddings"
    )
    openai_base_url: Optional[str] = Field(
        default=None,
        description="Override for OpenAI-compatible endpoints"
    )
    mock_llm: bool = Field(
        default=False,
        description="Use mock LLM responses for testing (no API calls)"
    )

    # ========== LLM Settings ==========
    llm_model: str = Field(
        default="gpt-3.5-turbo",
        description="Chat model used for pattern classification"
    )
    embedding_model: str = Field(
        default="text-embedding-ada-002",
        description="Embedding model for historical ticket vectors"
    )
    embedding_dimension: int = Field(
        default=1536,
        description="Embedding vector dimension (size of the pgvector column)",
        ge=2
    )
    llm_temperature: float = Field(
        default=0.3,
        description="Temperature for the classification prompt",
        ge=0.0,
        le=2.0
    )
    llm_max_tokens: int = Field(
        default=800,
        description="Max tokens for the classification reply",
        ge=1,
        le=8000
    )

    # ========== Similarity Search ==========
    similarity_threshold: float = Field(
        default=0.5,
        description="Minimum cosine similarity for a historical neighbour",
        ge=0.0,
        le=1.0
    )
    similarity_top_k: int = Field(
        default=5,
        description="Number of historical neighbours to consider",
        ge=1,
        le=50
    )
    backfill_batch_size: int = Field(
        default=50,
        description="Tickets embedded per backfill call",
        ge=1,
        le=500
    )

    # ========== Reconciliation Policy ==========
    agreement_pattern_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    agreement_history_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    partial_pattern_weight: float = Field(default=0.7, ge=0.0, le=1.0)
    partial_history_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    history_confidence_bar: int = Field(
        default=70,
        description="History alone wins only above this confidence",
        ge=0,
        le=100
    )
    disagreement_confidence_cap: int = Field(
        default=70,
        description="Pattern confidence cap when history disagrees",
        ge=0,
        le=100
    )

    # ========== Taxonomy ==========
    support_groups_path: Optional[Path] = Field(
        default=None,
        description="Optional YAML file overriding the built-in support groups"
    )

    # ========== Conversations ==========
    conversation_max_turns: int = Field(
        default=10,
        description="Turns kept per session in addition to the system turn",
        ge=1
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "test", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class RecommendationSource(str):
    """Which signal a final recommendation came from."""
    PATTERN_BASED = "pattern-based"
    COMBINED = "combined"
    PATTERN_WEIGHTED = "pattern-weighted"
    HISTORY_WEIGHTED = "history-weighted"


class StoreCapability(str):
    """Capabilities a historical ticket store may have to enable."""
    VECTOR_SEARCH = "vector-search"


class StoreAttribute(str):
    """Optional attributes of stored historical tickets."""
    EMBEDDING = "embedding"


class MessageRole(str):
    """Conversation turn roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


# ========== Lists for validation ==========

VALID_RECOMMENDATION_SOURCES = [
    RecommendationSource.PATTERN_BASED, RecommendationSource.COMBINED,
    RecommendationSource.PATTERN_WEIGHTED, RecommendationSource.HISTORY_WEIGHTED
]
VALID_MESSAGE_ROLES = [MessageRole.SYSTEM, MessageRole.USER, MessageRole.ASSISTANT]
