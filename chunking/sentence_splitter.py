"""
Sentence segmentation.

Splits normalized document text into an ordered list of sentences.
The sentence order produced here is the only ordering key used by the
rest of the chunking pipeline.
"""

import logging
import re
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)

# Abbreviations whose trailing period is not a sentence boundary
ABBREVIATIONS = [
    "Mr",
    "Mrs",
    "Ms",
    "Dr",
    "Prof",
    "Sr",
    "Jr",
    "St",
    "vs",
    "etc",
    "eg",
    "ie",
    "al",
    "Inc",
    "Ltd",
    "Corp",
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Sept",
    "Oct",
    "Nov",
    "Dec",
]

_DOT = "\x00"
_ABBREV_RE = re.compile(
    r"\b(" + "|".join(ABBREVIATIONS) + r")\.", flags=re.IGNORECASE
)
_DECIMAL_RE = re.compile(r"(\d)\.(\d)")
_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class Sentence:
    """A sentence with its character span in the source text."""

    text: str
    start: int
    end: int
    index: int


def _protect(text: str) -> str:
    text = _ABBREV_RE.sub(lambda m: m.group(1) + _DOT, text)
    return _DECIMAL_RE.sub(lambda m: m.group(1) + _DOT + m.group(2), text)


def split_into_sentences(text: str) -> List[Sentence]:
    """
    Split text into sentences with position information.

    Handles:
    - Abbreviations (Mr., Dr., etc.)
    - Decimal numbers
    - Question marks and exclamation points

    Args:
        text: Text to split

    Returns:
        List of Sentence objects, indexed in document order
    """
    if not text or not text.strip():
        return []

    # Protected text has the same length as the input, so spans line up
    protected = _protect(text)

    sentences = []
    pos = 0
    for part in _BOUNDARY_RE.split(protected):
        start = protected.find(part, pos)
        end = start + len(part)
        pos = end

        stripped = part.strip()
        if not stripped:
            continue

        lead = len(part) - len(part.lstrip())
        sentences.append(
            Sentence(
                text=text[start + lead : start + lead + len(stripped)],
                start=start + lead,
                end=start + lead + len(stripped),
                index=len(sentences),
            )
        )

    return sentences


def split_sentences(text: str) -> List[str]:
    """
    Split text into trimmed, whitespace-collapsed sentence strings.

    Empty or whitespace-only input yields an empty list; text with no
    sentence boundary yields a single sentence.
    """
    result = []
    for sentence in split_into_sentences(text):
        collapsed = _WHITESPACE_RE.sub(" ", sentence.text).strip()
        if collapsed:
            result.append(collapsed)

    logger.debug(f"Segmented {len(text)} chars into {len(result)} sentences")
    return result
