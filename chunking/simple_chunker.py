"""
Fixed-size sentence packing.

Cheaper alternative to semantic chunking for when embedding calls are not
worth it: every sentence is its own cluster, so chunks are consecutive runs
of sentences packed up to the token limit. No provider calls.
"""

import logging
from typing import List, Optional

from shared.errors import ConfigurationError

from .assembler import assemble_chunks
from .clustering import Cluster
from .sentence_splitter import split_sentences
from .tokenizer import TokenCountFn, TokenCounter

logger = logging.getLogger(__name__)


class SentenceChunker:
    """
    Sentence-based splitter with token-aware grouping.

    Usage:
        splitter = SentenceChunker(token_limit=500)
        chunks = splitter.split(long_text)
    """

    def __init__(
        self,
        token_limit: int = 200,
        count_tokens: Optional[TokenCountFn] = None,
        model_name: str = "text-embedding-3-large",
    ):
        if token_limit < 1:
            raise ConfigurationError(f"token_limit must be >= 1, got {token_limit}")
        self.token_limit = token_limit
        self.model_name = model_name
        self._count_tokens = count_tokens

    def split(self, text: str) -> List[str]:
        """
        Split text into token-limited chunks.

        Args:
            text: Normalized document text

        Returns:
            Chunk strings in document order
        """
        sentences = split_sentences(text)
        if not sentences:
            return []

        clusters = [Cluster([i]) for i in range(len(sentences))]

        if self._count_tokens is not None:
            chunks = assemble_chunks(
                clusters, sentences, self.token_limit, self._count_tokens
            )
        else:
            with TokenCounter(self.model_name) as counter:
                chunks = assemble_chunks(clusters, sentences, self.token_limit, counter)

        logger.info(f"Packed {len(sentences)} sentences into {len(chunks)} chunks")
        return chunks
