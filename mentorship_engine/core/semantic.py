"""
Semantic capability used by the scoring engine and the recommendation summary.

The engine never checks the environment itself: callers inject a provider, and
"not configured" is a NullSemanticProvider whose answers are all None.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import numpy as np

from ..config import get_settings
from ..exceptions import ExternalServiceDegraded

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful assistant that provides mentor matching recommendations "
    "for startup founders. Be concise and actionable."
)


def cosine_similarity(vec1: Optional[Sequence[float]], vec2: Optional[Sequence[float]]) -> float:
    """Cosine similarity in [-1, 1]; 0.0 for missing, mismatched or zero vectors."""
    if vec1 is None or vec2 is None or len(vec1) == 0 or len(vec1) != len(vec2):
        return 0.0

    a = np.asarray(vec1, dtype=float)
    b = np.asarray(vec2, dtype=float)
    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0
    return float(np.dot(a, b) / norm)


class SemanticProvider(ABC):
    """Interface for embedding and summary backends."""

    PROVIDER_NAME: str = "base"

    @property
    def available(self) -> bool:
        return True

    @abstractmethod
    def embed(self, texts: List[str]) -> Optional[List[List[float]]]:
        """Embeds each text. Returns None when the backend cannot answer."""
        pass

    def summarize(self, prompt: str) -> Optional[str]:
        """Short natural-language answer to ``prompt``, or None if unsupported."""
        return None

    def similarity(self, text_a: str, text_b: str) -> Optional[float]:
        vectors = self.embed([text_a, text_b])
        if not vectors or len(vectors) < 2:
            return None
        return cosine_similarity(vectors[0], vectors[1])


class NullSemanticProvider(SemanticProvider):
    """Stands in when no semantic backend is configured."""

    PROVIDER_NAME = "none"

    @property
    def available(self) -> bool:
        return False

    def embed(self, texts: List[str]) -> Optional[List[List[float]]]:
        return None

    def similarity(self, text_a: str, text_b: str) -> Optional[float]:
        return None


class SentenceTransformerProvider(SemanticProvider):
    """Local sentence-transformers model; embeddings only."""

    PROVIDER_NAME = "sentence_transformers"

    def __init__(self, model_name: Optional[str] = None):
        self.model_name = model_name

    def embed(self, texts: List[str]) -> Optional[List[List[float]]]:
        from .embeddings import get_embeddings
        return get_embeddings(texts, model_name=self.model_name)


class OpenAIProvider(SemanticProvider):
    """OpenAI embeddings + chat completions, each call bounded by a timeout."""

    PROVIDER_NAME = "openai"

    def __init__(
        self,
        api_key: str,
        embedding_model: str = "text-embedding-3-small",
        chat_model: str = "gpt-3.5-turbo",
        embed_timeout: float = 5.0,
        summary_timeout: float = 10.0,
    ):
        self._api_key = api_key
        self.embedding_model = embedding_model
        self.chat_model = chat_model
        self.embed_timeout = embed_timeout
        self.summary_timeout = summary_timeout
        self._client = None

    @property
    def available(self) -> bool:
        return bool(self._api_key)

    def _get_client(self):
        """Lazy load OpenAI client."""
        if self._client is None:
            from openai import OpenAI
            # No retries: a slow backend must not hold up a matching run
            self._client = OpenAI(api_key=self._api_key, max_retries=0)
        return self._client

    def embed(self, texts: List[str]) -> Optional[List[List[float]]]:
        import openai

        try:
            response = self._get_client().embeddings.create(
                input=texts,
                model=self.embedding_model,
                timeout=self.embed_timeout,
            )
        except openai.OpenAIError as e:
            raise ExternalServiceDegraded(f"OpenAI embeddings call failed: {e}") from e

        data = sorted(response.data, key=lambda item: item.index)
        if len(data) < len(texts):
            return None
        return [item.embedding for item in data]

    def summarize(self, prompt: str) -> Optional[str]:
        import openai

        try:
            response = self._get_client().chat.completions.create(
                model=self.chat_model,
                messages=[
                    {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=150,
                temperature=0.7,
                timeout=self.summary_timeout,
            )
        except openai.OpenAIError as e:
            raise ExternalServiceDegraded(f"OpenAI summary call failed: {e}") from e

        if not response.choices:
            return None
        content = response.choices[0].message.content
        return content.strip() if content and content.strip() else None


def get_semantic_provider(settings=None) -> SemanticProvider:
    """Builds the provider named by SEMANTIC_PROVIDER, falling back to the null provider."""
    settings = settings or get_settings()
    name = (settings.SEMANTIC_PROVIDER or "none").lower()

    if name == OpenAIProvider.PROVIDER_NAME:
        if not settings.OPENAI_API_KEY:
            logger.warning("SEMANTIC_PROVIDER=openai but OPENAI_API_KEY is not set; semantic scoring disabled")
            return NullSemanticProvider()
        return OpenAIProvider(
            api_key=settings.OPENAI_API_KEY,
            embedding_model=settings.OPENAI_EMBEDDING_MODEL,
            chat_model=settings.OPENAI_CHAT_MODEL,
            embed_timeout=settings.SEMANTIC_TIMEOUT_SECONDS,
            summary_timeout=settings.SUMMARY_TIMEOUT_SECONDS,
        )
    if name == SentenceTransformerProvider.PROVIDER_NAME:
        return SentenceTransformerProvider(model_name=settings.EMBEDDING_MODEL_NAME)
    if name != NullSemanticProvider.PROVIDER_NAME:
        logger.warning(f"Unknown SEMANTIC_PROVIDER '{name}'; semantic scoring disabled")
    return NullSemanticProvider()
