"""
Packing clusters into token-bounded chunks.

Clusters are walked in document order and packed greedily. A cluster that
is too large on its own is packed sentence by sentence; a sentence that is
still too large is packed word by word. A single word larger than the limit
is emitted verbatim as its own chunk, which is the only case where a chunk
may exceed the limit.

Token counts are not additive across a join (the separating space can
change how neighbouring text tokenizes), so every packer measures the
joined candidate text rather than summing per-piece counts.
"""

import logging
from typing import List, Sequence

from .clustering import Cluster
from .tokenizer import TokenCountFn

logger = logging.getLogger(__name__)


def _pack(
    pieces: Sequence[str],
    token_limit: int,
    count_tokens: TokenCountFn,
) -> List[str]:
    """Greedily join pieces that each fit the limit on their own."""
    chunks = []
    current: List[str] = []

    for piece in pieces:
        if current and count_tokens(" ".join(current + [piece])) > token_limit:
            chunks.append(" ".join(current))
            current = []
        current.append(piece)

    if current:
        chunks.append(" ".join(current))

    return chunks


def split_sentence_by_words(
    sentence: str,
    token_limit: int,
    count_tokens: TokenCountFn,
) -> List[str]:
    """Pack the words of one sentence into chunks of at most token_limit tokens."""
    chunks = []
    run: List[str] = []

    for word in sentence.split():
        if count_tokens(word) > token_limit:
            chunks.extend(_pack(run, token_limit, count_tokens))
            run = []
            logger.warning(
                f"Word of {count_tokens(word)} tokens exceeds chunk limit "
                f"{token_limit}, emitting as-is"
            )
            chunks.append(word)
            continue
        run.append(word)

    chunks.extend(_pack(run, token_limit, count_tokens))
    return chunks


def split_cluster_by_sentences(
    sentences: Sequence[str],
    token_limit: int,
    count_tokens: TokenCountFn,
) -> List[str]:
    """Pack the sentences of an oversized cluster, degrading to words as needed."""
    chunks = []
    run: List[str] = []

    for sentence in sentences:
        if count_tokens(sentence) > token_limit:
            chunks.extend(_pack(run, token_limit, count_tokens))
            run = []
            chunks.extend(split_sentence_by_words(sentence, token_limit, count_tokens))
            continue
        run.append(sentence)

    chunks.extend(_pack(run, token_limit, count_tokens))
    return chunks


def assemble_chunks(
    clusters: Sequence[Cluster],
    sentences: Sequence[str],
    token_limit: int,
    count_tokens: TokenCountFn,
) -> List[str]:
    """
    Form final chunks from clusters while respecting the token limit.

    Ordering is per cluster: chunks follow cluster order and clusters are
    sorted by first sentence index. When a non-contiguous cluster is too
    large and gets split, its later pieces may hold higher sentence
    indices than the first sentence of the next cluster.

    Args:
        clusters: Clusters sorted by first index
        sentences: All sentences, addressed by cluster indices
        token_limit: Maximum tokens per chunk
        count_tokens: Token counter for the embedding model

    Returns:
        Non-empty chunk strings in document order
    """
    chunks: List[str] = []
    current: List[str] = []

    for cluster in clusters:
        cluster_sentences = [sentences[idx] for idx in cluster.indices]
        cluster_text = " ".join(cluster_sentences)

        if count_tokens(" ".join(current + [cluster_text])) <= token_limit:
            current.append(cluster_text)
            continue

        if current:
            chunks.append(" ".join(current))
            current = []

        if count_tokens(cluster_text) > token_limit:
            chunks.extend(
                split_cluster_by_sentences(cluster_sentences, token_limit, count_tokens)
            )
        else:
            current = [cluster_text]

    if current:
        chunks.append(" ".join(current))

    return [c for c in (chunk.strip() for chunk in chunks) if c]
