"""
Triage External Service Adapters
==================================

Adapters that implement the triage application interfaces on top of the
shared LLM client infrastructure.
"""

from typing import List, Optional

from helpdesk.config import settings
from helpdesk.core import ProviderError
from helpdesk.infrastructure.llm import ILLMClient
from helpdesk.triage.application import IEmbeddingProvider, ITextGenerator


class LLMTextGenerator(ITextGenerator):
    """
    Adapter that exposes an ILLMClient as a plain text generator.

    Sends one system turn and one user turn.
    """

    def __init__(self, client: ILLMClient, max_tokens: Optional[int] = None):
        self._client = client
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._last_model = settings.llm_model

    @property
    def model_name(self) -> str:
        return self._last_model

    async def complete(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        result = await self._client.chat_completion(
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=self._max_tokens,
            operation="classification"
        )
        self._last_model = result.model
        return result.content


class LLMEmbeddingProvider(IEmbeddingProvider):
    """
    Adapter that exposes an ILLMClient as an embedding provider.

    Vectors must match the dimension of the pgvector column.
    """

    def __init__(self, client: ILLMClient, dimension: Optional[int] = None):
        self._client = client
        self._dimension = dimension or settings.embedding_dimension

    async def embed(self, text: str) -> List[float]:
        if not text.strip():
            raise ProviderError("Cannot embed empty text")

        result = await self._client.generate_embedding(text)
        if result.dimension != self._dimension:
            raise ProviderError(
                f"Embedding has {result.dimension} dimensions, expected {self._dimension}"
            )
        return result.embedding
