"""
Term-weight indexer used for auto-tagging.

Builds a TF-IDF weight table for one document and ranks its terms.

With no reference corpus the document is its own one-document corpus, so
every term has the same document frequency and the IDF factor is a
constant: the ranking is raw term frequency, ties broken by first
occurrence. Supplying a corpus makes rarer terms rank higher.

Every call builds a fresh table. The indexer holds nothing that one
document can leak into the next.
"""

import math
import re
from collections import Counter
from typing import Iterable, Optional

from .config import DEFAULT_TOP_TAGS
from .schemas import TermWeight
from .logger import get_module_logger

logger = get_module_logger("indexer")

# Word tokens: runs of letters, digits and underscores
TOKEN_PATTERN = re.compile(r'\w+', re.UNICODE)

# English stop words, plus single letters and digits, which never make useful tags
STOP_WORDS: frozenset[str] = frozenset(
    {
        "about", "above", "after", "again", "all", "also", "am", "an", "and",
        "another", "any", "are", "as", "at", "be", "because", "been", "before",
        "being", "below", "between", "both", "but", "by", "came", "can",
        "cannot", "come", "could", "did", "do", "does", "doing", "down",
        "during", "each", "few", "for", "from", "further", "get", "got", "had",
        "has", "have", "having", "he", "her", "here", "hers", "herself", "him",
        "himself", "his", "how", "if", "in", "into", "is", "it", "its",
        "itself", "just", "like", "make", "many", "me", "might", "more", "most",
        "much", "must", "my", "myself", "never", "no", "nor", "not", "now",
        "of", "off", "on", "once", "only", "or", "other", "our", "ours",
        "ourselves", "out", "over", "own", "said", "same", "see", "she",
        "should", "since", "so", "some", "still", "such", "take", "than",
        "that", "the", "their", "theirs", "them", "themselves", "then",
        "there", "these", "they", "this", "those", "through", "to", "too",
        "under", "until", "up", "very", "was", "way", "we", "well", "were",
        "what", "when", "where", "which", "while", "who", "whom", "why",
        "will", "with", "would", "you", "your", "yours", "yourself",
        "yourselves",
    }
    | set("abcdefghijklmnopqrstuvwxyz")
    | set("0123456789")
)


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens of text, in order of appearance."""
    if not text:
        return []
    return TOKEN_PATTERN.findall(text.lower())


def inverse_document_frequency(doc_frequency: int, total_documents: int) -> float:
    """Smoothed IDF: 1 + ln(N / (1 + df))."""
    return 1 + math.log(total_documents / (1 + doc_frequency))


class TermWeightIndexer:
    """
    Ranks the terms of one document by TF-IDF weight.

    The optional corpus is read-only reference material: its document
    frequencies are computed once and never updated by the documents
    being ranked.
    """

    def __init__(
        self,
        keep_stop_words: bool = False,
        corpus: Optional[Iterable[str]] = None
    ):
        self.keep_stop_words = keep_stop_words
        self._corpus_size = 0
        self._corpus_df: dict[str, int] = {}

        if corpus is not None:
            for document in corpus:
                self._corpus_size += 1
                for term in set(self._terms(document)):
                    self._corpus_df[term] = self._corpus_df.get(term, 0) + 1
            logger.debug(f"Reference corpus: {self._corpus_size} documents, "
                         f"{len(self._corpus_df)} distinct terms")

    def _terms(self, text: str) -> list[str]:
        tokens = tokenize(text)
        if self.keep_stop_words:
            return tokens
        return [t for t in tokens if t not in STOP_WORDS]

    def weigh_terms(self, text: str) -> list[TermWeight]:
        """
        Build the document's weight table, highest weight first.

        Ties keep first-occurrence order (Counter preserves insertion order
        and sorted() is stable).
        """
        frequencies = Counter(self._terms(text))
        if not frequencies:
            return []

        total_documents = self._corpus_size + 1
        table = []
        for term, tf in frequencies.items():
            doc_frequency = self._corpus_df.get(term, 0) + 1
            idf = inverse_document_frequency(doc_frequency, total_documents)
            table.append(TermWeight(term=term, weight=tf * idf))

        return sorted(table, key=lambda entry: entry.weight, reverse=True)

    def rank_terms(self, text: str, top_n: int = DEFAULT_TOP_TAGS) -> list[str]:
        """The top_n highest-weighted terms (fewer if the text has fewer)."""
        if top_n <= 0:
            return []
        return [entry.term for entry in self.weigh_terms(text)[:top_n]]


def rank_terms(text: str, top_n: int = DEFAULT_TOP_TAGS, keep_stop_words: bool = False) -> list[str]:
    """Convenience function to rank the terms of a single document."""
    return TermWeightIndexer(keep_stop_words=keep_stop_words).rank_terms(text, top_n)
