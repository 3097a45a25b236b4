"""
Semantic embeddings.

Providers turn text into a unit-length vector:

* :class:`SentenceTransformerProvider` – the default, a local
  ``sentence-transformers`` model (``all-MiniLM-L6-v2``, 384 dimensions,
  mean pooling).
* :class:`OpenAIEmbeddingProvider` – the OpenAI embeddings API.
* :class:`HashingProvider` – a deterministic token-hashing embedding
  that needs no model download.  Useful offline and in tests.

:class:`EmbeddingEngine` owns one provider handle for the lifetime of
the process.  The provider is created lazily on first use by a
mutex-guarded one-time initialiser, so concurrent first calls load the
model exactly once.  A failed load raises :class:`ModelLoadError` and
is retried on the next call.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import math
import os
import threading
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as pairwise_cosine

from ..config import Settings
from ..errors import DimensionMismatchError, ModelLoadError

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves upwards (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def _unit(vector: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(vector))
    return vector / norm if norm else vector


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector returned by :meth:`encode`."""
        raise NotImplementedError

    @abstractmethod
    def encode(self, text: str) -> np.ndarray:
        """Embed ``text`` into a mean-pooled, L2-normalized vector."""
        raise NotImplementedError


class HashingProvider(EmbeddingProvider):
    """Deterministic bag-of-tokens embedding.

    Each lowercase whitespace token is hashed into a value in ``[0, 1)``
    which is rotated across every dimension and centred on zero.  Token
    vectors are mean-pooled and normalised.  Empty text yields the zero
    vector.
    """

    def __init__(self, dim: int = 384) -> None:
        if dim <= 0:
            raise ValueError("dim must be positive")
        self._dim = dim
        self._steps = np.arange(1, dim + 1, dtype=np.float64)

    @property
    def dimension(self) -> int:
        return self._dim

    def _token_vector(self, token: str) -> np.ndarray:
        h = hashlib.md5(token.encode("utf-8")).hexdigest()
        base = int(h[:8], 16) / 0xFFFFFFFF
        return ((base * self._steps) % 1.0) * 2.0 - 1.0

    def encode(self, text: str) -> np.ndarray:
        tokens = text.lower().split()
        if not tokens:
            return np.zeros(self._dim, dtype=np.float32)
        pooled = np.mean([self._token_vector(t) for t in tokens], axis=0)
        return _unit(pooled).astype(np.float32)


class SentenceTransformerProvider(EmbeddingProvider):
    """Local sentence-transformers model."""

    def __init__(self, model_name: str = "all-MiniLM-L6-v2") -> None:
        try:
            from sentence_transformers import SentenceTransformer  # type: ignore
        except ImportError as exc:
            raise ModelLoadError(
                "sentence-transformers package is required for SentenceTransformerProvider"
            ) from exc
        logger.info("Loading embedding model %s", model_name)
        try:
            self.model = SentenceTransformer(model_name)
        except Exception as exc:  # noqa: BLE001
            raise ModelLoadError(f"Failed to load embedding model {model_name}: {exc}") from exc
        self.model_name = model_name
        self._dim = int(self.model.get_sentence_embedding_dimension())
        logger.info("Embedding model %s loaded (%d dimensions)", model_name, self._dim)

    @property
    def dimension(self) -> int:
        return self._dim

    def encode(self, text: str) -> np.ndarray:
        vector = self.model.encode(text, normalize_embeddings=True, convert_to_numpy=True)
        return np.asarray(vector, dtype=np.float32)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Provider that uses the OpenAI embeddings endpoint."""

    KNOWN_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(self, api_key: str | None = None, model: str = "text-embedding-3-small") -> None:
        try:
            import openai  # type: ignore
        except ImportError as exc:
            raise ModelLoadError("openai package is required for OpenAIEmbeddingProvider") from exc
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ModelLoadError("OPENAI_API_KEY not provided")
        self.client = openai.OpenAI(api_key=self.api_key)
        self.model = model
        self._dim: Optional[int] = self.KNOWN_DIMENSIONS.get(model)

    @property
    def dimension(self) -> int:
        if self._dim is None:
            self._dim = len(self._request("dimension check"))
        return self._dim

    def _request(self, text: str) -> np.ndarray:
        response = self.client.embeddings.create(model=self.model, input=text)
        return np.asarray(response.data[0].embedding, dtype=np.float32)

    def encode(self, text: str) -> np.ndarray:
        # The API rejects empty input.
        if not text.strip():
            return np.zeros(self.dimension, dtype=np.float32)
        return _unit(self._request(text))


def build_provider(settings: Settings) -> EmbeddingProvider:
    """Create the provider named by ``settings.embedding_provider``.

    Unknown names log a warning and fall back to sentence-transformers.
    """
    name = settings.embedding_provider
    if name == "hashing":
        logger.info("Using hashing embedding provider (%d dimensions)", settings.hashing_dimension)
        return HashingProvider(settings.hashing_dimension)
    if name == "openai":
        return OpenAIEmbeddingProvider(settings.openai_api_key, settings.openai_embedding_model)
    if name not in ("sentence-transformers", "sentence_transformers"):
        logger.warning("Unknown embedding provider '%s'; using sentence-transformers", name)
    return SentenceTransformerProvider(settings.embedding_model)


def cosine_similarity(v1: Sequence[float], v2: Sequence[float]) -> float:
    """Cosine similarity in ``[-1, 1]``.

    Returns 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatchError: If the vectors differ in length.
    """
    a = np.asarray(v1, dtype=np.float64).reshape(1, -1)
    b = np.asarray(v2, dtype=np.float64).reshape(1, -1)
    if a.shape[1] != b.shape[1]:
        raise DimensionMismatchError(a.shape[1], b.shape[1])
    if not np.any(a) or not np.any(b):
        return 0.0
    return float(np.clip(pairwise_cosine(a, b)[0, 0], -1.0, 1.0))


def similarity_to_percent(similarity: float) -> int:
    """Scale a cosine similarity to a rounded percentage (not clamped)."""
    return round_half_up(similarity * 100)


class EmbeddingEngine:
    """Process-wide embedding handle with lazy, once-only model loading.

    Args:
        provider_factory: Zero-argument callable creating the provider.
            Defaults to :func:`build_provider` on ``settings``.
        settings: Configuration; defaults to :class:`Settings()`.
        max_chars: Character budget applied before embedding; defaults
            to ``settings.max_embed_chars``.
    """

    def __init__(
        self,
        provider_factory: Optional[Callable[[], EmbeddingProvider]] = None,
        *,
        settings: Optional[Settings] = None,
        max_chars: Optional[int] = None,
    ) -> None:
        self.settings = settings or Settings()
        self._factory = provider_factory or (lambda: build_provider(self.settings))
        self.max_chars = max_chars or self.settings.max_embed_chars
        self._provider: Optional[EmbeddingProvider] = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._provider is not None

    def _get_provider(self) -> EmbeddingProvider:
        provider = self._provider
        if provider is not None:
            return provider
        with self._lock:
            if self._provider is None:
                try:
                    self._provider = self._factory()
                except ModelLoadError:
                    raise
                except Exception as exc:  # noqa: BLE001
                    raise ModelLoadError(f"Failed to initialise embedding provider: {exc}") from exc
            return self._provider

    def warm_up(self) -> int:
        """Load the model now and return its dimension."""
        return self._get_provider().dimension

    @property
    def dimension(self) -> int:
        return self._get_provider().dimension

    def embed(self, text: str) -> np.ndarray:
        """Embed ``text`` after truncating it to ``max_chars`` characters."""
        provider = self._get_provider()
        return np.asarray(provider.encode(text[: self.max_chars]), dtype=np.float32)

    def similarity_percent(self, text_a: str, text_b: str) -> int:
        return similarity_to_percent(cosine_similarity(self.embed(text_a), self.embed(text_b)))

    def batch_similarity_percent(self, texts: Sequence[str], reference_text: str) -> List[int]:
        """Percent similarity of each text to one reference, in input order.

        The reference is embedded once.
        """
        reference = self.embed(reference_text)
        return [similarity_to_percent(cosine_similarity(self.embed(t), reference)) for t in texts]

    async def aembed(self, text: str) -> np.ndarray:
        return await asyncio.to_thread(self.embed, text)

    async def asimilarity_percent(self, text_a: str, text_b: str) -> int:
        """Async :meth:`similarity_percent`; both embeddings run concurrently."""
        vec_a, vec_b = await asyncio.gather(self.aembed(text_a), self.aembed(text_b))
        return similarity_to_percent(cosine_similarity(vec_a, vec_b))

    async def abatch_similarity_percent(
        self,
        texts: Sequence[str],
        reference_text: str,
        concurrency: Optional[int] = None,
    ) -> List[int]:
        """Async :meth:`batch_similarity_percent` with bounded parallelism."""
        reference = await self.aembed(reference_text)
        semaphore = asyncio.Semaphore(concurrency or DEFAULT_CONCURRENCY)

        async def _one(text: str) -> int:
            async with semaphore:
                vector = await self.aembed(text)
            return similarity_to_percent(cosine_similarity(vector, reference))

        return list(await asyncio.gather(*(_one(t) for t in texts)))
