"""
Embedding clients for sentence-level semantic chunking.

CRITICAL: Never mix vectors from different models in one chunking run.

Every client returns one vector per input text, in input order. Backend
failures surface as ProviderError; a failed call is never papered over
with zero vectors.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import List, Optional, Protocol, Sequence

import numpy as np

from shared.errors import ConfigurationError, PipelineCancelledError, ProviderError
from shared.config import EmbeddingConfig, settings

logger = logging.getLogger(__name__)

# Seconds between cancellation checks while waiting on batches
_POLL_INTERVAL = 0.1


class EmbeddingClient(Protocol):
    """Anything that turns a batch of texts into vectors."""

    def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        ...


def _check_length(texts: Sequence[str], vectors: Sequence) -> None:
    if len(vectors) != len(texts):
        raise ProviderError(
            f"Embedding provider returned {len(vectors)} vectors for {len(texts)} texts"
        )


class OpenAIEmbeddingClient:
    """
    OpenAI embeddings API client.

    The underlying SDK client holds only credentials and connection pooling,
    so one instance can be shared across documents and threads.

    Usage:
        client = OpenAIEmbeddingClient()
        vectors = client.embed(["First sentence.", "Second sentence."])
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[EmbeddingConfig] = None,
    ):
        self.config = config or settings.embedding
        self.api_key = api_key or settings.OPENAI_API_KEY
        self._client = None

    @property
    def client(self):
        """Lazy load OpenAI client."""
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key, timeout=self.config.timeout)
        return self._client

    def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        if not texts:
            return []

        try:
            response = self.client.embeddings.create(
                model=self.config.model_name,
                input=list(texts),
                encoding_format="float",
            )
        except Exception as e:
            raise ProviderError(f"OpenAI embedding request failed: {e}") from e

        data = sorted(response.data, key=lambda item: item.index)
        _check_length(texts, data)
        return [np.asarray(item.embedding, dtype=np.float64) for item in data]


class SentenceTransformerEmbeddingClient:
    """
    Local sentence-transformers model client.

    Usage:
        config = EmbeddingConfig(provider="sentence_transformers",
                                 model_name="all-MiniLM-L6-v2")
        client = SentenceTransformerEmbeddingClient(config)
    """

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        self.config = config or settings.embedding
        self._model = None
        self._lock = threading.Lock()

    @property
    def model(self):
        """Lazy load the model."""
        if self._model is None:
            with self._lock:
                if self._model is None:
                    from sentence_transformers import SentenceTransformer

                    logger.info(f"Loading embedding model: {self.config.model_name}")
                    try:
                        self._model = SentenceTransformer(self.config.model_name)
                    except Exception as e:
                        raise ProviderError(
                            f"Failed to load {self.config.model_name}: {e}"
                        ) from e
        return self._model

    def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        if not texts:
            return []

        model = self.model
        try:
            vectors = model.encode(
                list(texts), show_progress_bar=False, convert_to_numpy=True
            )
        except Exception as e:
            raise ProviderError(f"Local embedding failed: {e}") from e

        _check_length(texts, vectors)
        return [np.asarray(v, dtype=np.float64) for v in vectors]


def embed_batches(
    client: EmbeddingClient,
    batches: Sequence[Sequence[str]],
    max_workers: int = 4,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[np.ndarray]:
    """
    Embed independent batches concurrently and flatten in batch order.

    Results are slotted by batch index, so completion order does not
    matter. The first failure cancels the remaining batches.

    Args:
        client: Embedding client
        batches: Token-bounded batches in document order
        max_workers: Thread pool size
        timeout: Overall deadline in seconds for all batches
        cancel_event: Set by the caller to abort the run

    Returns:
        One vector per sentence, in document order
    """
    if not batches:
        return []

    results: List[Optional[List[np.ndarray]]] = [None] * len(batches)
    workers = max(1, min(max_workers, len(batches)))

    logger.info(f"Embedding {len(batches)} batches with {workers} workers")

    executor = ThreadPoolExecutor(max_workers=workers)
    futures = {
        executor.submit(client.embed, list(batch)): idx
        for idx, batch in enumerate(batches)
    }
    deadline = time.monotonic() + timeout if timeout is not None else None
    try:
        pending = set(futures)
        while pending:
            if cancel_event is not None and cancel_event.is_set():
                raise PipelineCancelledError("Embedding cancelled")
            if deadline is not None and time.monotonic() >= deadline:
                raise ProviderError(f"Embedding timed out after {timeout:.0f}s")

            done, pending = wait(
                pending, timeout=_POLL_INTERVAL, return_when=FIRST_EXCEPTION
            )

            for future in done:
                idx = futures[future]
                error = future.exception()
                if error is not None:
                    if isinstance(error, ProviderError):
                        raise error
                    raise ProviderError(f"Embedding batch {idx} failed: {error}") from error

                vectors = future.result()
                _check_length(batches[idx], vectors)
                results[idx] = vectors
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    embeddings: List[np.ndarray] = []
    for vectors in results:
        embeddings.extend(vectors)
    return embeddings


def get_embedding_client(config: Optional[EmbeddingConfig] = None) -> EmbeddingClient:
    """
    Create an embedding client for the configured provider.

    Args:
        config: Embedding configuration (defaults to settings)

    Returns:
        EmbeddingClient instance
    """
    config = config or settings.embedding
    if config.provider == "openai":
        return OpenAIEmbeddingClient(config=config)
    if config.provider == "sentence_transformers":
        return SentenceTransformerEmbeddingClient(config=config)
    raise ConfigurationError(f"Unknown embedding provider: {config.provider}")
