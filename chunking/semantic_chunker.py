"""
Semantic chunking via sentence embedding clustering.

Pipeline:
    normalized text -> sentences -> token-bounded batches -> embeddings
    -> similarity matrix -> clusters -> token-bounded chunks

Each stage consumes the full output of the previous one, so stages run
strictly in sequence. Only the embedding stage fans out (per batch).
Chunks come back in document order, never ranked by similarity.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from shared.config import ChunkingConfig, EmbeddingConfig, settings
from shared.errors import DegenerateInputError, PipelineCancelledError

from embeddings.embedder import EmbeddingClient, embed_batches, get_embedding_client

from .assembler import assemble_chunks
from .batcher import split_into_batches
from .clustering import Cluster, build_clusters
from .sentence_splitter import split_sentences
from .similarity import similarity_matrix
from .tokenizer import TokenCountFn, TokenCounter

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    EXTRACTED = "extracted"
    NORMALIZED = "normalized"
    SEGMENTED = "segmented"
    BATCHED = "batched"
    EMBEDDED = "embedded"
    CLUSTERED = "clustered"
    ASSEMBLED = "assembled"


@dataclass
class Chunk:
    """A final chunk with metadata."""

    text: str
    token_count: int
    chunk_index: int


class SemanticChunker:
    """
    Semantic chunker built on sentence embedding similarity.

    Usage:
        chunker = SemanticChunker()
        chunks = chunker.chunk(normalized_text)

        # With custom config and a local embedding model
        config = ChunkingConfig(token_limit=300, min_cluster_size=2)
        client = SentenceTransformerEmbeddingClient(local_config)
        chunker = SemanticChunker(config=config, embedding_client=client)
    """

    def __init__(
        self,
        config: Optional[ChunkingConfig] = None,
        embedding_client: Optional[EmbeddingClient] = None,
        count_tokens: Optional[TokenCountFn] = None,
        embedding_config: Optional[EmbeddingConfig] = None,
    ):
        """
        Args:
            config: Chunking parameters (defaults to settings)
            embedding_client: Embedding backend (defaults to configured provider)
            count_tokens: Token counter; a tiktoken counter for the embedding
                model is opened per run when omitted
            embedding_config: Embedding settings (defaults to settings)
        """
        self.config = config or settings.chunking
        self.embedding_config = embedding_config or settings.embedding
        self._embedding_client = embedding_client
        self._count_tokens = count_tokens

    @property
    def embedding_client(self) -> EmbeddingClient:
        if self._embedding_client is None:
            self._embedding_client = get_embedding_client(self.embedding_config)
        return self._embedding_client

    def chunk(
        self,
        text: str,
        cancel_event: Optional[threading.Event] = None,
        strict: bool = False,
    ) -> List[str]:
        """
        Chunk normalized document text.

        Args:
            text: Normalized document text
            cancel_event: Set by the caller to abort the run
            strict: Raise DegenerateInputError on empty input instead of
                returning no chunks

        Returns:
            Chunk strings in document order

        Raises:
            ConfigurationError: Invalid parameters (before any provider call)
            ProviderError: Embedding or tokenizer failure
            PipelineCancelledError: cancel_event was set
        """
        self.config.validate()

        if self._count_tokens is not None:
            return self._run(text, self._count_tokens, cancel_event, strict)

        with TokenCounter(self.embedding_config.model_name) as counter:
            return self._run(text, counter, cancel_event, strict)

    def _run(
        self,
        text: str,
        count_tokens: TokenCountFn,
        cancel_event: Optional[threading.Event],
        strict: bool,
    ) -> List[str]:
        state = PipelineState.NORMALIZED

        def advance(next_state: PipelineState) -> PipelineState:
            if cancel_event is not None and cancel_event.is_set():
                raise PipelineCancelledError(f"Chunking cancelled in state {state.value}")
            logger.debug(f"Chunking pipeline: {state.value} -> {next_state.value}")
            return next_state

        sentences = split_sentences(text)
        state = advance(PipelineState.SEGMENTED)

        if not sentences:
            if strict:
                raise DegenerateInputError("Document has no sentences")
            logger.info("Empty document, no chunks produced")
            return []

        if len(sentences) == 1:
            # Nothing to cluster, skip the provider entirely
            clusters = [Cluster([0])]
        else:
            batches = split_into_batches(
                sentences, self.config.batch_token_limit, count_tokens
            )
            state = advance(PipelineState.BATCHED)
            logger.info(
                f"Created {len(batches)} sentence batches from {len(sentences)} sentences"
            )

            embeddings = embed_batches(
                self.embedding_client,
                batches,
                max_workers=self.embedding_config.max_workers,
                timeout=self.embedding_config.timeout,
                cancel_event=cancel_event,
            )
            state = advance(PipelineState.EMBEDDED)

            similarity = similarity_matrix(embeddings)
            clusters = build_clusters(
                similarity,
                self.config.similarity_threshold,
                self.config.min_cluster_size,
            )
        state = advance(PipelineState.CLUSTERED)

        chunks = assemble_chunks(
            clusters, sentences, self.config.token_limit, count_tokens
        )
        state = advance(PipelineState.ASSEMBLED)

        logger.info(
            f"Created {len(chunks)} semantic chunks from {len(clusters)} clusters"
        )
        return chunks

    def chunk_with_metadata(self, text: str, **kwargs) -> List[Chunk]:
        """Chunk text and return Chunk objects with token counts."""
        texts = self.chunk(text, **kwargs)
        if self._count_tokens is not None:
            count = self._count_tokens
            return [Chunk(t, count(t), i) for i, t in enumerate(texts)]

        with TokenCounter(self.embedding_config.model_name) as counter:
            return [Chunk(t, counter(t), i) for i, t in enumerate(texts)]


def chunk_document(
    text: str,
    doc_id: str,
    metadata: Optional[Dict] = None,
    chunker: Optional[SemanticChunker] = None,
) -> List[Dict]:
    """
    Chunk a document and attach metadata to each chunk.

    Args:
        text: Normalized document text
        doc_id: Document identifier
        metadata: Additional metadata to attach
        chunker: Chunker to use (defaults to a SemanticChunker from settings)

    Returns:
        List of chunk dicts with IDs and metadata

    Example:
        >>> chunks = chunk_document(text, "doc_001", {"source": "report.pdf"})
        >>> for chunk in chunks:
        ...     print(f"Chunk {chunk['id']}: {chunk['token_count']} tokens")
    """
    base_metadata = metadata or {}
    chunker = chunker or SemanticChunker()

    result = []
    for chunk in chunker.chunk_with_metadata(text):
        result.append(
            {
                "id": f"{doc_id}#chunk_{chunk.chunk_index}",
                "doc_id": doc_id,
                "chunk_index": chunk.chunk_index,
                "text": chunk.text,
                "token_count": chunk.token_count,
                **base_metadata,
            }
        )

    logger.info(f"Document {doc_id} chunked into {len(result)} chunks")
    return result
