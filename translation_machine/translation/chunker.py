"""
Text Chunker

Splits a document into chunks whose estimated token count fits a budget.
Paragraphs are grouped greedily; a paragraph that is too large on its own
is split by sentence, and a sentence that is still too large is split by
words. A single word larger than the budget is emitted alone.
"""

import math
import re
from typing import Callable, List

from translation_machine.logger import get_logger

logger = get_logger(__name__)

# 1 token is roughly 0.75 words or 3.5 characters
CHARS_PER_TOKEN = 3.5

# Upper bound for the input side of a single request
MAX_INPUT_TOKENS = 8000

PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n")
SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?])\s+")

PARAGRAPH_JOINER = "\n\n"


def estimate_tokens(text: str) -> int:
    """Rough token estimate from character count."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def _pack(units: List[str], joiner: str, max_tokens: int,
          estimator: Callable[[str], int]) -> List[str]:
    """Greedily join units while the joined text stays within budget."""
    packed = []
    current = ""
    for unit in units:
        candidate = current + joiner + unit if current else unit
        if current and estimator(candidate) > max_tokens:
            packed.append(current)
            current = unit
        else:
            current = candidate
    if current:
        packed.append(current)
    return packed


def split_by_words(text: str, max_tokens: int, estimator: Callable[[str], int] = estimate_tokens) -> List[str]:
    """Last-resort split on whitespace. Words are never broken."""
    return _pack(text.split(), " ", max_tokens, estimator)


def split_by_sentences(text: str, max_tokens: int, estimator: Callable[[str], int] = estimate_tokens) -> List[str]:
    """Split a paragraph by sentence, falling back to words for oversize sentences."""
    pieces = []
    for sentence in _pack(SENTENCE_BREAK_RE.split(text), " ", max_tokens, estimator):
        if estimator(sentence) > max_tokens:
            pieces.extend(split_by_words(sentence, max_tokens, estimator))
        else:
            pieces.append(sentence)
    return pieces


def chunk_text(text: str, max_tokens: int, estimator: Callable[[str], int] = estimate_tokens) -> List[str]:
    """
    Split text into ordered, non-empty chunks of at most max_tokens each.

    Args:
        text: The full document text
        max_tokens: Token budget per chunk (estimated)
        estimator: Function mapping text to an estimated token count

    Returns:
        List of chunk strings; empty for empty or whitespace-only input
    """
    if max_tokens <= 0:
        raise ValueError(f"max_tokens must be positive, got {max_tokens}")

    paragraphs = [p.strip() for p in PARAGRAPH_BREAK_RE.split(text or "")]
    paragraphs = [p for p in paragraphs if p]
    if not paragraphs:
        return []

    chunks = []
    current = ""
    for paragraph in paragraphs:
        candidate = current + PARAGRAPH_JOINER + paragraph if current else paragraph
        if estimator(candidate) <= max_tokens:
            current = candidate
            continue

        if current:
            chunks.append(current)
            current = ""

        if estimator(paragraph) <= max_tokens:
            current = paragraph
        else:
            # Oversize paragraph: emit all but the last piece, keep the tail open
            pieces = split_by_sentences(paragraph, max_tokens, estimator)
            chunks.extend(pieces[:-1])
            current = pieces[-1]

    if current:
        chunks.append(current)

    # Final validation pass, words as the ultimate guarantee
    validated = []
    for chunk in chunks:
        chunk = chunk.strip()
        if not chunk:
            continue
        if estimator(chunk) > max_tokens:
            validated.extend(split_by_words(chunk, max_tokens, estimator))
        else:
            validated.append(chunk)

    logger.debug(f"Split {len(text)} chars into {len(validated)} chunks (budget {max_tokens} tokens)")
    return validated


def input_budget(chunk_size: int, system_prompt: str) -> int:
    """Tokens left for chunk text once the system prompt is accounted for."""
    return max(1, min(chunk_size - estimate_tokens(system_prompt), MAX_INPUT_TOKENS))
