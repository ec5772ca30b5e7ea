"""
Semantic Chunking Module.

Splits long documents into bounded-size, semantically coherent chunks
for embedding and retrieval:
- Sentence segmentation
- Token-bounded embedding batches
- Pairwise sentence similarity and greedy clustering
- Token-bounded chunk assembly with sentence/word fallback

A fixed-size sentence packer is provided as a cheaper alternative.

Usage:
    from chunking import SemanticChunker, chunk_document

    chunker = SemanticChunker()
    chunks = chunker.chunk(text)
"""

from shared.errors import (
    ChunkingError,
    ConfigurationError,
    DegenerateInputError,
    PipelineCancelledError,
    ProviderError,
)

from .assembler import assemble_chunks, split_cluster_by_sentences, split_sentence_by_words
from .batcher import split_into_batches
from .clustering import (
    MERGE_RELAXATION,
    Cluster,
    build_clusters,
    mean_similarity,
    merge_small_clusters,
    seed_clusters,
)
from .semantic_chunker import Chunk, PipelineState, SemanticChunker, chunk_document
from .sentence_splitter import Sentence, split_into_sentences, split_sentences
from .similarity import cosine_similarity, similarity_matrix
from .simple_chunker import SentenceChunker
from .tokenizer import TokenCounter, TokenCountFn

__all__ = [
    "SemanticChunker",
    "SentenceChunker",
    "Chunk",
    "PipelineState",
    "chunk_document",
    "Sentence",
    "split_into_sentences",
    "split_sentences",
    "split_into_batches",
    "similarity_matrix",
    "cosine_similarity",
    "Cluster",
    "seed_clusters",
    "merge_small_clusters",
    "build_clusters",
    "mean_similarity",
    "MERGE_RELAXATION",
    "assemble_chunks",
    "split_cluster_by_sentences",
    "split_sentence_by_words",
    "TokenCounter",
    "TokenCountFn",
    "ChunkingError",
    "ProviderError",
    "ConfigurationError",
    "DegenerateInputError",
    "PipelineCancelledError",
]
