"""
Readability-style text extractor.

Finds the primary readable content of an author-supplied body and renders
it as plain text. Boilerplate (navigation, sidebars, share widgets, hidden
elements) is dropped first; the remaining paragraphs then vote for the
container that holds the article, following the scoring used by browser
reader modes.

Pipeline position: Stage 2 of 2 (Preprocessor → Extractor).
Input:  raw markup string (possibly malformed or empty)
Output: ExtractedText (plain text, optional title, warnings)

Fail-soft: extract() never raises. Any fault degrades to empty text.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from .config import (
    DEFAULT_MAX_MARKUP_CHARS,
    DEFAULT_MAX_NESTING_DEPTH,
    AnalysisSettings,
    OversizePolicy,
)
from .exceptions import ExtractionError
from .preprocessor import Preprocessor
from .schemas import ExtractedText
from .logger import get_module_logger

logger = get_module_logger("extractor")

# Block-level elements: text inside two different blocks is rendered on
# separate lines. Inline elements (span, em, a, ...) merge into their block.
BLOCK_TAGS = ['p', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'li', 'td', 'th',
              'blockquote', 'figcaption', 'dt', 'dd', 'caption', 'div',
              'section', 'article', 'main', 'pre', 'tr', 'ul', 'ol', 'dl',
              'table', 'figure', 'address', 'header', 'footer', 'body']

# Elements that force a line break without holding text
BREAK_TAGS = ['br', 'hr']

# Elements treated as page chrome wherever they appear
BOILERPLATE_TAGS = ['nav', 'aside', 'menu', 'dialog']

# Page-level header/footer are chrome; inside an article they belong to it
SECTION_CHROME_TAGS = ['header', 'footer']

# Elements that explicitly mark the primary content
CONTENT_ROOT_TAGS = ['article', 'main']

# Elements whose text votes for its ancestors during scoring
PARAGRAPH_TAGS = ['p', 'pre', 'td', 'blockquote']

# Paragraphs shorter than this carry no vote
MIN_PARAGRAPH_CHARS = 25

# class/id hints, as used by reader-mode implementations
UNLIKELY_CANDIDATES = re.compile(
    r'combx|comment|community|disqus|extra|foot|header|menu|remark|rss|'
    r'shoutbox|sidebar|sponsor|ad-break|agegate|pagination|pager|popup|'
    r'tweet|twitter|share|social|cookie|banner|breadcrumb|related|newsletter',
    re.IGNORECASE
)
MAYBE_CANDIDATE = re.compile(r'and|article|body|column|main|shadow|content', re.IGNORECASE)
POSITIVE_HINTS = re.compile(
    r'article|body|content|entry|hentry|main|page|post|text|blog|story',
    re.IGNORECASE
)
NEGATIVE_HINTS = re.compile(
    r'combx|comment|com-|contact|foot|footer|footnote|masthead|media|meta|'
    r'outbrain|promo|related|scroll|shoutbox|sidebar|sponsor|shopping|tags|'
    r'tool|widget',
    re.IGNORECASE
)

# Starting score a container gets from its own tag
TAG_BASE_SCORES = {
    'div': 5, 'article': 5, 'section': 3,
    'pre': 3, 'td': 3, 'blockquote': 3,
    'address': -3, 'ol': -3, 'ul': -3, 'dl': -3, 'dd': -3, 'dt': -3, 'li': -3, 'form': -3,
    'h1': -5, 'h2': -5, 'h3': -5, 'h4': -5, 'h5': -5, 'h6': -5, 'th': -5,
}

HINT_WEIGHT = 25

# Sibling merging: a sibling of the winning container joins it when it
# scores at least max(floor, share * winner), or reads as related prose.
SIBLING_SCORE_FLOOR = 5
SIBLING_SCORE_SHARE = 0.2
SIBLING_TEXT_TAGS = ['p', 'blockquote', 'pre']
HEADING_TAGS = ['h1', 'h2', 'h3', 'h4', 'h5', 'h6']
SIBLING_LONG_TEXT_CHARS = 80
SIBLING_MAX_LINK_DENSITY = 0.25
SENTENCE_END = re.compile(r'[.!?](\s|$)')

# Regex patterns for hidden inline styles
HIDDEN_PATTERNS = [
    re.compile(r'display\s*:\s*none', re.IGNORECASE),
    re.compile(r'visibility\s*:\s*hidden', re.IGNORECASE),
]


class Extractor:
    """Extracts the primary readable text from markup."""

    def __init__(
        self,
        max_markup_chars: int = DEFAULT_MAX_MARKUP_CHARS,
        oversize_policy: OversizePolicy = OversizePolicy.TRUNCATE,
        preprocessor: Optional[Preprocessor] = None,
        max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH
    ):
        self.preprocessor = preprocessor or Preprocessor(
            max_markup_chars, oversize_policy, max_nesting_depth
        )

    @classmethod
    def from_settings(cls, settings: AnalysisSettings) -> "Extractor":
        return cls(
            settings.max_markup_chars,
            settings.oversize_policy,
            max_nesting_depth=settings.max_nesting_depth
        )

    def extract(self, markup: str) -> ExtractedText:
        """
        Extract plain readable text from markup.

        Args:
            markup: Raw markup string

        Returns:
            ExtractedText; text is "" when nothing readable was found
        """
        if not markup or not markup.strip():
            return ExtractedText()

        try:
            return self._extract(markup)
        except ExtractionError as e:
            logger.warning(f"Extraction degraded to empty text: {e.message}")
            return ExtractedText(text=e.partial_text, warnings=[e.message])
        except Exception as e:
            # Extraction is best-effort enrichment; a parser fault must not
            # fail the content operation that asked for it.
            logger.error(f"Extraction failed: {e}", exc_info=True)
            return ExtractedText(warnings=[f"Extraction failed: {e}"])

    def _extract(self, markup: str) -> ExtractedText:
        preprocessed = self.preprocessor.process(markup)
        warnings = list(preprocessed["warnings"])

        soup = preprocessed["soup"]
        if soup is None:
            raise ExtractionError(warnings[-1] if warnings else "Markup rejected")

        title = self._get_title(soup)

        body = soup.find('body') or soup
        removed = self._strip_boilerplate(body)
        if removed:
            logger.debug(f"Removed {removed} boilerplate elements")

        containers = None
        root = self._find_content_root(body)
        if root is not None:
            containers = [root]
        else:
            candidates = self._score_candidates(body)
            best, best_score = self._select_best_candidate(candidates)
            if best is not None:
                containers = self._merge_siblings(best, best_score, candidates)
        if not containers:
            # Nothing scored: short or unstructured body, keep all of it
            containers = [body]

        text = self._render_text(containers)
        if not text:
            warnings.append("No readable content found")

        logger.debug(f"Extracted {len(text)} chars from "
                     f"{', '.join(f'<{c.name}>' for c in containers)}")
        return ExtractedText(text=text, title=title, warnings=warnings)

    # --- Title ---

    def _get_title(self, soup: BeautifulSoup) -> Optional[str]:
        """Document <title>, else the first <h1>."""
        for elem in (soup.find('title'), soup.find('h1')):
            if elem is None:
                continue
            title = self._collapse(elem.get_text(' '))
            if title:
                return title
        return None

    # --- Boilerplate removal ---

    def _is_hidden(self, elem: Tag) -> bool:
        """Check if element is hidden via attribute or inline style."""
        if elem.has_attr('hidden'):
            return True
        if str(elem.get('aria-hidden', '')).lower() == 'true':
            return True
        style = elem.get('style', '')
        if not style:
            return False
        return any(p.search(style) for p in HIDDEN_PATTERNS)

    def _class_and_id(self, elem: Tag) -> str:
        classes = elem.get('class') or []
        if isinstance(classes, str):
            classes = [classes]
        return ' '.join(classes) + ' ' + str(elem.get('id', ''))

    def _is_boilerplate(self, elem: Tag) -> bool:
        if elem.name in BOILERPLATE_TAGS:
            return True
        if elem.name in SECTION_CHROME_TAGS and elem.find_parent(CONTENT_ROOT_TAGS) is None:
            return True
        if str(elem.get('role', '')).lower() in ('navigation', 'banner', 'contentinfo', 'complementary'):
            return True
        if elem.name in ('body', 'html', 'article', 'main'):
            return False
        hints = self._class_and_id(elem)
        return bool(UNLIKELY_CANDIDATES.search(hints)) and not MAYBE_CANDIDATE.search(hints)

    def _strip_boilerplate(self, body: Tag) -> int:
        """Decompose hidden and boilerplate subtrees. Returns count removed."""
        doomed = [elem for elem in body.find_all(True)
                  if self._is_hidden(elem) or self._is_boilerplate(elem)]
        count = 0
        for elem in doomed:
            if elem.decomposed:
                continue
            elem.decompose()
            count += 1
        return count

    # --- Content root selection ---

    def _find_content_root(self, body: Tag) -> Optional[Tag]:
        """Explicit <article>/<main>/[role=main] with the most text, if any."""
        roots = body.find_all(CONTENT_ROOT_TAGS)
        roots.extend(body.find_all(attrs={'role': 'main'}))
        best, best_len = None, 0
        for root in roots:
            length = len(self._collapse(root.get_text(' ')))
            if length > best_len:
                best, best_len = root, length
        return best

    def _hint_weight(self, elem: Tag) -> int:
        hints = self._class_and_id(elem)
        weight = 0
        if NEGATIVE_HINTS.search(hints):
            weight -= HINT_WEIGHT
        if POSITIVE_HINTS.search(hints):
            weight += HINT_WEIGHT
        return weight

    def _link_density(self, elem: Tag) -> float:
        text_length = len(self._collapse(elem.get_text(' ')))
        if not text_length:
            return 0.0
        link_length = sum(len(self._collapse(a.get_text(' '))) for a in elem.find_all('a'))
        return min(link_length / text_length, 1.0)

    def _paragraphs(self, body: Tag) -> list[Tag]:
        """Paragraph-like elements, including divs that only hold inline content."""
        paragraphs = body.find_all(PARAGRAPH_TAGS)

        # id(elem) of every element holding a block descendant. Ancestors of
        # a marked element are marked too, so each walk stops at the first hit.
        has_block = set()
        for block in body.find_all(BLOCK_TAGS):
            for parent in block.parents:
                if id(parent) in has_block:
                    break
                has_block.add(id(parent))
                if parent is body:
                    break

        paragraphs.extend(div for div in body.find_all('div') if id(div) not in has_block)
        return paragraphs

    def _score_candidates(self, body: Tag) -> dict:
        """
        Score containers by the paragraphs they hold.

        Each paragraph scores 1 point, plus 1 per comma, plus 1 per 100
        characters (max 3). The parent receives the full score and the
        grandparent half. Class/id hints shift a container by 25 either way
        and the total is discounted by the container's link density.

        Returns:
            dict of id(elem) → (elem, final score)
        """
        # id(elem) → [elem, score]; Tag equality is structural, so key on identity
        candidates = {}

        for paragraph in self._paragraphs(body):
            text = self._collapse(paragraph.get_text(' '))
            if len(text) < MIN_PARAGRAPH_CHARS:
                continue

            score = 1 + text.count(',') + min(len(text) // 100, 3)

            parent = paragraph.parent
            grandparent = parent.parent if parent is not None else None
            for ancestor, share in ((parent, 1.0), (grandparent, 0.5)):
                if not isinstance(ancestor, Tag) or ancestor.name == '[document]':
                    continue
                entry = candidates.get(id(ancestor))
                if entry is None:
                    base = TAG_BASE_SCORES.get(ancestor.name, 0) + self._hint_weight(ancestor)
                    entry = candidates[id(ancestor)] = [ancestor, float(base)]
                entry[1] += score * share

        return {
            key: (elem, score * (1 - self._link_density(elem)))
            for key, (elem, score) in candidates.items()
        }

    def _select_best_candidate(self, candidates: dict) -> tuple[Optional[Tag], float]:
        """Highest scoring container; the first one wins a tie."""
        best, best_score = None, 0.0
        for elem, score in candidates.values():
            if best is None or score > best_score:
                best, best_score = elem, score

        if best is not None:
            logger.debug(f"Best candidate <{best.name}> scored {best_score:.1f} "
                         f"of {len(candidates)} candidates")
        return best, best_score

    def _is_related_text(self, sibling: Tag) -> bool:
        """Authored text next to the winner: prose paragraphs and plain headings."""
        text = self._collapse(sibling.get_text(' '))
        if not text:
            return False
        density = self._link_density(sibling)
        if sibling.name in HEADING_TAGS:
            return density == 0
        if sibling.name not in SIBLING_TEXT_TAGS:
            return False
        if len(text) > SIBLING_LONG_TEXT_CHARS:
            return density < SIBLING_MAX_LINK_DENSITY
        return density == 0 and bool(SENTENCE_END.search(text))

    def _merge_siblings(self, best: Tag, best_score: float, candidates: dict) -> list[Tag]:
        """
        The winner plus every sibling that belongs to the same content.

        A sibling joins when it scores at least max(5, 20% of the winner),
        or when it is prose or a heading with few links. When that covers
        every element child of <body>, the body itself is returned so loose
        text between the blocks is kept as well.
        """
        parent = best.parent
        if not isinstance(parent, Tag) or parent.name in ('[document]', 'html'):
            return [best]

        threshold = max(SIBLING_SCORE_FLOOR, best_score * SIBLING_SCORE_SHARE)
        siblings = [child for child in parent.children if isinstance(child, Tag)]
        merged = []
        for sibling in siblings:
            if sibling is best:
                merged.append(sibling)
                continue
            entry = candidates.get(id(sibling))
            if entry is not None and entry[1] >= threshold:
                merged.append(sibling)
            elif self._is_related_text(sibling):
                merged.append(sibling)

        if len(merged) > 1:
            logger.debug(f"Merged {len(merged) - 1} sibling(s) of <{best.name}>")
        if parent.name == 'body' and len(merged) == len(siblings) and len(merged) > 1:
            return [parent]
        return merged

    # --- Text rendering ---

    def _block_of(self, node, stop: Tag) -> Tag:
        """Nearest block-level ancestor of a text node (or the container)."""
        for parent in node.parents:
            if parent is stop or parent.name in BLOCK_TAGS:
                return parent
        return stop

    def _collapse(self, text: str) -> str:
        return re.sub(r'\s+', ' ', text).strip()

    def _render_text(self, containers: list[Tag]) -> str:
        """
        Render subtrees as plain text, in order.

        Walks descendants iteratively so deeply nested markup cannot exhaust
        the call stack. Text from different blocks goes on separate lines;
        whitespace runs inside a line collapse to one space.
        """
        lines = []
        current = []
        prev_block = None

        def flush():
            line = self._collapse(''.join(current))
            if line:
                lines.append(line)
            current.clear()

        for container in containers:
            for node in container.descendants:
                if isinstance(node, Tag):
                    if node.name in BREAK_TAGS:
                        flush()
                        prev_block = None
                    continue
                # Comments, doctypes and CDATA sections are not readable text
                if not isinstance(node, NavigableString) or isinstance(node, PreformattedString):
                    continue

                block = self._block_of(node, container)
                if block is not prev_block:
                    flush()
                    prev_block = block
                current.append(str(node))

        flush()
        return '\n'.join(lines)


def extract(markup: str) -> ExtractedText:
    """Convenience function to extract readable text from markup."""
    return Extractor().extract(markup)
