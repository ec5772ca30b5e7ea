"""
Shared test fixtures for the chunking test suite.

Provides: deterministic token counters, fake embedding clients, similarity
matrix builders. No fixture touches the network.
"""

import re
import threading
import time
from typing import List, Sequence

import numpy as np
import pytest


def count_words(text: str) -> int:
    """Whitespace token counter: one token per word."""
    return len(text.split())


def count_digit_pieces(text: str) -> int:
    """
    Word counter where a space before a digit is a token of its own.

    cl100k digit runs never absorb a leading space, so joining "a." and
    "1 b." costs one token more than the two counted apart.
    """
    return len(text.split()) + len(re.findall(r" (?=\d)", text))


class KeywordEmbeddingClient:
    """
    Embeds each text as a one-hot vector over topic keywords.

    Texts sharing a keyword have similarity 1.0, different keywords 0.0,
    and texts with no keyword get a zero vector.
    """

    def __init__(self, keywords: Sequence[str], delay: float = 0.0):
        self.keywords = [k.lower() for k in keywords]
        self.delay = delay
        self.calls: List[List[str]] = []
        self._lock = threading.Lock()

    def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        with self._lock:
            self.calls.append(list(texts))
        if self.delay:
            time.sleep(self.delay)

        vectors = []
        for text in texts:
            vector = np.zeros(len(self.keywords))
            lowered = text.lower()
            for pos, keyword in enumerate(self.keywords):
                if keyword in lowered:
                    vector[pos] = 1.0
                    break
            vectors.append(vector)
        return vectors


class FailingEmbeddingClient:
    """Raises on every call."""

    def __init__(self, error: Exception = None):
        self.error = error or RuntimeError("quota exceeded")
        self.calls = 0

    def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        self.calls += 1
        raise self.error


@pytest.fixture
def word_counter():
    """Token counter that counts whitespace-separated words."""
    return count_words


@pytest.fixture
def digit_counter():
    """Token counter that is not additive across a joining space."""
    return count_digit_pieces


@pytest.fixture
def keyword_client():
    """Embedding client keyed on the topics 'cat' and 'stock'."""
    return KeywordEmbeddingClient(["cat", "stock"])


@pytest.fixture
def failing_client():
    """Embedding client that always fails."""
    return FailingEmbeddingClient()


@pytest.fixture
def make_similarity():
    """
    Build an N x N similarity matrix from a default value and explicit pairs.

    Usage:
        sim = make_similarity(4, default=0.1, pairs={(0, 1): 0.95})
    """

    def _make(n: int, default: float = 0.0, pairs: dict = None) -> np.ndarray:
        matrix = np.full((n, n), default, dtype=np.float64)
        for (i, j), value in (pairs or {}).items():
            matrix[i][j] = value
            matrix[j][i] = value
        np.fill_diagonal(matrix, 1.0)
        return matrix

    return _make


TOPIC_TEXT = (
    "The cat sat on the mat. "
    "Stock prices rose sharply today. "
    "My cat likes fish. "
    "The stock market closed higher. "
    "A cat chased the mouse. "
    "Investors bought more stock."
)


@pytest.fixture
def topic_text():
    """Six sentences alternating between cats and stocks."""
    return TOPIC_TEXT
