"""
Page text normalization ahead of chunking.

Extracted page text arrives in two shapes: mostly clean prose that only
needs whitespace collapsing, or layout-mangled text where whitespace
outweighs content (tables, columns, OCR). The second kind is rewritten by
an LLM text cleaner.

Pipeline: extracted pages -> normalized pages -> one document text body
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from shared.config import NormalizationConfig, settings

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n"

CLEANER_PROMPT = (
    "As a professional text cleaner, your job is to normalize the following text "
    "to improve readability. Retain the original meaning, semantics. Adjust "
    "formatting issues such as excessive spaces, misplaced line breaks, or "
    "unintended special characters to make the text syntactically clear and "
    "human-readable.\n"
    "Use the same language as the text. Never try to translate the text to other "
    "languages. You will only return the cleaned text without any additional text "
    "or comments."
)

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def collapse_whitespace(text: str) -> str:
    """Remove control characters and collapse whitespace runs to single spaces."""
    return " ".join(_CONTROL_RE.sub(" ", text).split())


def whitespace_ratio(text: str) -> float:
    """
    Ratio of non-whitespace to whitespace characters.

    Returns infinity for text with no whitespace at all.
    """
    whitespace = sum(1 for ch in text if ch.isspace())
    if whitespace == 0:
        return float("inf")
    return (len(text) - whitespace) / whitespace


class LLMTextCleaner:
    """
    Rewrites layout-mangled text with an OpenAI chat model.

    Usage:
        cleaner = LLMTextCleaner()
        cleaned = cleaner.clean(messy_text)
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model = model or settings.normalization.llm_model
        self._client = None

    @property
    def client(self):
        """Lazy load OpenAI client."""
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def clean(self, text: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": CLEANER_PROMPT},
                {"role": "user", "content": text},
            ],
        )
        return (response.choices[0].message.content or "").strip()


def normalize_text(
    text: str,
    cleaner: Optional[LLMTextCleaner] = None,
    config: Optional[NormalizationConfig] = None,
) -> str:
    """
    Normalize one page of extracted text.

    Args:
        text: Raw page text
        cleaner: LLM cleaner for layout-mangled text (created if needed)
        config: Normalization settings

    Returns:
        Normalized text
    """
    config = config or settings.normalization

    if len(text) < config.min_length:
        return text.strip()

    ratio = whitespace_ratio(text)
    if ratio > config.whitespace_ratio_threshold or not config.use_llm:
        return collapse_whitespace(text)

    logger.debug(f"Whitespace-heavy text (ratio {ratio:.2f}), using LLM cleaner")
    cleaner = cleaner or LLMTextCleaner()
    try:
        cleaned = cleaner.clean(text)
    except Exception as e:
        logger.warning(f"LLM text cleaning failed, collapsing whitespace instead: {e}")
        return collapse_whitespace(text)

    if not cleaned:
        logger.warning("LLM text cleaner returned nothing, collapsing whitespace instead")
        return collapse_whitespace(text)

    return collapse_whitespace(cleaned)


def normalize_pages(
    pages: Sequence[str],
    cleaner: Optional[LLMTextCleaner] = None,
    config: Optional[NormalizationConfig] = None,
    max_workers: int = 4,
) -> List[str]:
    """
    Normalize pages concurrently, preserving page order.

    Args:
        pages: Raw page texts in order
        cleaner: Shared LLM cleaner
        config: Normalization settings
        max_workers: Thread pool size

    Returns:
        Normalized page texts in the same order
    """
    if not pages:
        return []

    config = config or settings.normalization
    if cleaner is None and config.use_llm:
        cleaner = LLMTextCleaner()

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(pages)))) as executor:
        normalized = list(
            executor.map(lambda page: normalize_text(page, cleaner, config), pages)
        )

    logger.info(f"Normalized {len(pages)} pages")
    return normalized


def join_pages(pages: Sequence[str]) -> str:
    """Concatenate normalized pages into one document text body."""
    return PAGE_SEPARATOR.join(pages)
