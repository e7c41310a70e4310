"""
Word count and reading-time estimation.

Words are whitespace-delimited runs, counted as-is: no stemming and no
punctuation stripping, so "fox." and "fox" are both one word.
"""

from .config import DEFAULT_WORDS_PER_MINUTE
from .schemas import TextMetrics


def count_words(text: str) -> int:
    """Number of non-empty whitespace-delimited tokens."""
    if not text:
        return 0
    return len(text.split())


def reading_time(word_count: int, words_per_minute: int = DEFAULT_WORDS_PER_MINUTE) -> int:
    """Minutes needed to read word_count words, rounded up (0 words → 0 minutes)."""
    if word_count <= 0:
        return 0
    # Integer ceiling division avoids float rounding on large counts
    return -(-word_count // words_per_minute)


def compute_metrics(text: str, words_per_minute: int = DEFAULT_WORDS_PER_MINUTE) -> TextMetrics:
    """Compute word count and reading time for plain text."""
    words = count_words(text)
    return TextMetrics(word_count=words, reading_time=reading_time(words, words_per_minute))
