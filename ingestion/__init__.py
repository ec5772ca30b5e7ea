"""
Document Ingestion Module.

This module turns extracted page texts into chunks:
- Page normalization (whitespace collapsing or LLM cleaning)
- Page concatenation into one document text body
- Semantic or fixed-size sentence chunking

Usage:
    from ingestion import ChunkingPipeline

    pipeline = ChunkingPipeline()
    chunks = pipeline.process_pages(pages, doc_id="doc_1")
"""

from .ingest_pipeline import ChunkingPipeline, ChunkingStats
from .normalize import (
    LLMTextCleaner,
    collapse_whitespace,
    join_pages,
    normalize_pages,
    normalize_text,
    whitespace_ratio,
)

__all__ = [
    "ChunkingPipeline",
    "ChunkingStats",
    "LLMTextCleaner",
    "normalize_text",
    "normalize_pages",
    "join_pages",
    "collapse_whitespace",
    "whitespace_ratio",
]
