"""
Embeddings Module.

CRITICAL: Never mix vectors from different models in one chunking run.

This module handles:
- Embedding clients (OpenAI API, local sentence-transformers)
- Concurrent, order-preserving batch dispatch

Usage:
    from embeddings import get_embedding_client, embed_batches

    client = get_embedding_client()
    vectors = embed_batches(client, [["text1", "text2"], ["text3"]])
"""

from .embedder import (
    EmbeddingClient,
    OpenAIEmbeddingClient,
    SentenceTransformerEmbeddingClient,
    embed_batches,
    get_embedding_client,
)

__all__ = [
    "EmbeddingClient",
    "OpenAIEmbeddingClient",
    "SentenceTransformerEmbeddingClient",
    "embed_batches",
    "get_embedding_client",
]
