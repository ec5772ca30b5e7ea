"""
Token-bounded batching of sentences for embedding calls.

Batches keep the embedding provider under its per-request input limit.
Lexical splitting of oversized text is not done here; a sentence that is
larger than the limit on its own simply travels in a batch by itself.
"""

import logging
from typing import List, Sequence

from .tokenizer import TokenCountFn

logger = logging.getLogger(__name__)


def split_into_batches(
    sentences: Sequence[str],
    token_limit: int,
    count_tokens: TokenCountFn,
) -> List[List[str]]:
    """
    Greedily group sentences into batches of at most token_limit tokens.

    Args:
        sentences: Sentences in document order
        token_limit: Maximum tokens per embedding call
        count_tokens: Token counter for the embedding model

    Returns:
        Non-empty batches that partition the input in order
    """
    batches: List[List[str]] = []
    current: List[str] = []
    current_tokens = 0

    for sentence in sentences:
        sentence_tokens = count_tokens(sentence)

        if sentence_tokens > token_limit:
            if current:
                batches.append(current)
                current = []
                current_tokens = 0
            logger.debug(
                f"Sentence of {sentence_tokens} tokens exceeds batch limit "
                f"{token_limit}, sending alone"
            )
            batches.append([sentence])
            continue

        if current and current_tokens + sentence_tokens > token_limit:
            batches.append(current)
            current = []
            current_tokens = 0

        current.append(sentence)
        current_tokens += sentence_tokens

    if current:
        batches.append(current)

    return batches
