"""
Keyword-based category classifier.

Each category in the taxonomy scores by how many of its keywords appear in
the text; the highest score wins. Two rules are part of the observable
contract and must not drift:

  - Presence scoring: a keyword found once or a hundred times adds 1.
    (KeywordScoring.FREQUENCY counts occurrences instead; it is opt-in.)
  - Strictly-greater wins: on a tie the category listed first keeps the lead.

No category scoring above zero, or an empty taxonomy, yields "Uncategorized".
"""

from collections import Counter
from typing import Sequence

from .config import KeywordScoring
from .indexer import tokenize
from .schemas import CategoryDefinition, UNCATEGORIZED
from .logger import get_module_logger

logger = get_module_logger("classifier")


def score_category(
    category: CategoryDefinition,
    token_counts: Counter,
    scoring: KeywordScoring = KeywordScoring.PRESENCE
) -> int:
    """Score one category against a document's token counts."""
    if scoring == KeywordScoring.FREQUENCY:
        return sum(token_counts.get(keyword, 0) for keyword in category.keywords)
    return sum(1 for keyword in category.keywords if keyword in token_counts)


def classify(
    text: str,
    categories: Sequence[CategoryDefinition],
    scoring: KeywordScoring = KeywordScoring.PRESENCE
) -> str:
    """
    Pick the best-matching category name for text.

    Args:
        text: Plain text to classify
        categories: Taxonomy, in priority order
        scoring: Presence (default) or frequency keyword scoring

    Returns:
        The winning category name, or "Uncategorized"
    """
    if not categories:
        return UNCATEGORIZED

    # Fresh per call; Counter doubles as the distinct-token set
    token_counts = Counter(tokenize(text))
    if not token_counts:
        return UNCATEGORIZED

    best_name = UNCATEGORIZED
    best_score = 0
    for category in categories:
        score = score_category(category, token_counts, scoring)
        if score > best_score:
            best_name, best_score = category.name, score

    logger.debug(f"Classified as '{best_name}' (score {best_score}, "
                 f"{len(categories)} categories)")
    return best_name
