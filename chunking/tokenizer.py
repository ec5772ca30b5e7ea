"""
Token counting for embedding model vocabularies.

The same counter must be used for a whole chunking run; batch limits and
chunk limits are only meaningful against one vocabulary.
"""

import logging
from typing import Callable, Optional

import tiktoken

from shared.errors import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "cl100k_base"

TokenCountFn = Callable[[str], int]


class TokenCounter:
    """
    tiktoken-backed token counter for a named model.

    Usage:
        with TokenCounter("text-embedding-3-large") as counter:
            n = counter.count("Some text.")
    """

    def __init__(self, model_name: str = "text-embedding-3-large"):
        self.model_name = model_name
        self._enc: Optional[tiktoken.Encoding] = self._load_encoding(model_name)

    @staticmethod
    def _load_encoding(model_name: str) -> tiktoken.Encoding:
        try:
            return tiktoken.encoding_for_model(model_name)
        except KeyError:
            logger.debug(
                f"No tiktoken mapping for {model_name}, using {DEFAULT_ENCODING}"
            )
        except Exception as e:
            raise ProviderError(f"Failed to load tokenizer for {model_name}: {e}") from e

        try:
            return tiktoken.get_encoding(DEFAULT_ENCODING)
        except Exception as e:
            raise ProviderError(
                f"Failed to load tokenizer {DEFAULT_ENCODING}: {e}"
            ) from e

    @property
    def encoding_name(self) -> str:
        if self._enc is None:
            raise ProviderError("Tokenizer has been closed")
        return self._enc.name

    def count(self, text: str) -> int:
        """Count tokens in text."""
        if self._enc is None:
            raise ProviderError("Tokenizer has been closed")
        return len(self._enc.encode(text, disallowed_special=()))

    def __call__(self, text: str) -> int:
        return self.count(text)

    def close(self) -> None:
        """Release the loaded encoding."""
        self._enc = None

    def __enter__(self) -> "TokenCounter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

