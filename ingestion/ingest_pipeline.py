"""
Document chunking pipeline.

Orchestrates the full per-document workflow:
Extracted pages -> Normalization -> One text body -> Semantic (or sentence) chunking

Each document is processed independently; nothing produced for one
document is reused for the next.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from chunking.semantic_chunker import PipelineState, SemanticChunker
from chunking.simple_chunker import SentenceChunker
from chunking.tokenizer import TokenCountFn
from shared.config import ChunkingConfig, NormalizationConfig, settings

from .normalize import LLMTextCleaner, join_pages, normalize_pages

logger = logging.getLogger(__name__)

MODES = ("semantic", "sentence")


@dataclass
class ChunkingStats:
    """Statistics from a pipeline's lifetime."""

    total_docs: int = 0
    successful: int = 0
    failed: int = 0
    empty_docs: int = 0
    total_pages: int = 0
    total_chunks: int = 0


class ChunkingPipeline:
    """
    Per-document chunking pipeline.

    Flow:
    Extracted pages -> Normalized pages -> Document text -> Chunks

    Usage:
        pipeline = ChunkingPipeline()

        # Chunk already extracted page texts
        chunks = pipeline.process_pages(["page one ...", "page two ..."], doc_id="doc_1")

        # Get statistics
        stats = pipeline.get_stats()
    """

    def __init__(
        self,
        config: Optional[ChunkingConfig] = None,
        chunker: Optional[SemanticChunker] = None,
        normalization: Optional[NormalizationConfig] = None,
        cleaner: Optional[LLMTextCleaner] = None,
        count_tokens: Optional[TokenCountFn] = None,
    ):
        """
        Args:
            config: Chunking parameters (defaults to settings)
            chunker: Semantic chunker (built from config if omitted)
            normalization: Normalization settings
            cleaner: LLM text cleaner for whitespace-heavy pages
            count_tokens: Token counter shared by both chunking modes
        """
        self.config = config or settings.chunking
        self.normalization = normalization or settings.normalization
        self.cleaner = cleaner
        self.count_tokens = count_tokens
        self.chunker = chunker or SemanticChunker(
            config=self.config, count_tokens=count_tokens
        )
        self.stats = ChunkingStats()

    def chunk_text(
        self,
        text: str,
        mode: str = "semantic",
        cancel_event: Optional[threading.Event] = None,
    ) -> List[str]:
        """Chunk a normalized document text body."""
        self.config.validate()
        if mode == "semantic":
            return self.chunker.chunk(text, cancel_event=cancel_event)
        if mode == "sentence":
            return SentenceChunker(
                token_limit=self.config.token_limit,
                count_tokens=self.count_tokens,
            ).split(text)
        raise ValueError(f"Unknown chunking mode: {mode}. Expected one of {MODES}")

    def process_pages(
        self,
        pages: Sequence[str],
        doc_id: str,
        metadata: Optional[Dict] = None,
        normalize: bool = True,
        mode: str = "semantic",
        cancel_event: Optional[threading.Event] = None,
    ) -> List[Dict]:
        """
        Chunk one document given its extracted page texts.

        Args:
            pages: Extracted page texts in page order
            doc_id: Document identifier
            metadata: Metadata attached to every chunk
            normalize: Run page normalization first
            mode: "semantic" or "sentence"
            cancel_event: Set by the caller to abort the run

        Returns:
            List of chunk dicts with IDs and metadata
        """
        # Before normalization, which may call the LLM cleaner
        self.config.validate()
        self.chunker.config.validate()

        self.stats.total_docs += 1
        self.stats.total_pages += len(pages)
        state = PipelineState.EXTRACTED

        try:
            if normalize:
                pages = normalize_pages(pages, self.cleaner, self.normalization)
            state = PipelineState.NORMALIZED

            text = join_pages(pages)
            chunks = self.chunk_text(text, mode=mode, cancel_event=cancel_event)
            state = PipelineState.ASSEMBLED
        except Exception:
            self.stats.failed += 1
            logger.error(f"Chunking {doc_id} aborted after state {state.value}")
            raise

        self.stats.successful += 1
        if not chunks:
            self.stats.empty_docs += 1
        self.stats.total_chunks += len(chunks)

        base_metadata = metadata or {}
        result = [
            {
                "id": f"{doc_id}#chunk_{i}",
                "doc_id": doc_id,
                "chunk_index": i,
                "text": chunk,
                **base_metadata,
            }
            for i, chunk in enumerate(chunks)
        ]

        logger.info(f"Document {doc_id} chunked into {len(result)} chunks ({mode})")
        return result

    def process_file(self, path: str, **kwargs) -> List[Dict]:
        """
        Chunk a plain-text file. Form feeds separate pages.

        Args:
            path: Path to a UTF-8 text file
            **kwargs: Passed to process_pages

        Returns:
            List of chunk dicts
        """
        file_path = Path(path)
        pages = file_path.read_text(encoding="utf-8", errors="replace").split("\f")
        return self.process_pages(pages, doc_id=kwargs.pop("doc_id", file_path.stem), **kwargs)

    def get_stats(self) -> Dict:
        """Get pipeline statistics."""
        return {
            "total_docs": self.stats.total_docs,
            "successful": self.stats.successful,
            "failed": self.stats.failed,
            "empty_docs": self.stats.empty_docs,
            "total_pages": self.stats.total_pages,
            "total_chunks": self.stats.total_chunks,
        }

    def reset_stats(self) -> None:
        """Reset statistics for a new run."""
        self.stats = ChunkingStats()


if __name__ == "__main__":
    import argparse
    import json

    parser = argparse.ArgumentParser(description="Chunk a text document")
    parser.add_argument("--input", required=True, help="UTF-8 text file (form feeds split pages)")
    parser.add_argument("--mode", choices=MODES, default="semantic", help="Chunking mode")
    parser.add_argument("--no-normalize", action="store_true", help="Skip normalization")

    args = parser.parse_args()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    pipeline = ChunkingPipeline()
    chunks = pipeline.process_file(
        args.input, mode=args.mode, normalize=not args.no_normalize
    )

    print(json.dumps({"chunks": chunks, "stats": pipeline.get_stats()}, indent=2))
