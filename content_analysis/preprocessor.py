"""
Preprocessor module for rule-based markup cleanup.

Normalizes an author-supplied body before the extractor looks for content:
- Enforces the size and nesting-depth caps so pathological input never
  reaches the parser
- Sanitizes the raw string (fixes common malformations)
- Parses into a BeautifulSoup tree with a parser fallback chain
- Removes comments and non-content elements (scripts, styles, embeds, forms)

Design principle: NEVER FAIL on bad markup. Always produce usable output.

Pipeline position: Stage 1 of 2 (Preprocessor → Extractor).
Input:  raw markup string (possibly malformed, possibly huge)
Output: dict with soup, sanitized_markup, warnings, truncated/rejected flags
"""

import re
from collections import Counter
from typing import Optional

from bs4 import BeautifulSoup, Comment

from .config import DEFAULT_MAX_MARKUP_CHARS, DEFAULT_MAX_NESTING_DEPTH, OversizePolicy
from .exceptions import PreprocessorError
from .logger import get_module_logger

logger = get_module_logger("preprocessor")

# A comment opener, or an open/close tag: group 1 is "/" for closers, group 2
# the name. A tag never spans another "<", which keeps the scan linear.
TAG_PATTERN = re.compile(r'<!--|<(/?)([a-zA-Z][a-zA-Z0-9:-]*)[^<>]*>')

# Never hold children
VOID_ELEMENTS = frozenset([
    'area', 'base', 'br', 'col', 'embed', 'hr', 'img', 'input', 'keygen',
    'link', 'meta', 'param', 'source', 'track', 'wbr',
])

# Closed by their next sibling, so they never stack up
IMPLICITLY_CLOSED = frozenset([
    'p', 'li', 'dt', 'dd', 'option', 'optgroup', 'tr', 'td', 'th',
    'thead', 'tbody', 'tfoot', 'rp', 'rt',
])

# Content up to the matching close tag is raw text, not markup
RAW_TEXT_CLOSERS = {
    name: re.compile(rf'</{name}\s*>', re.IGNORECASE)
    for name in ('script', 'style', 'textarea', 'title', 'xmp', 'plaintext', 'noscript')
}


class Preprocessor:
    """
    Rule-based markup preprocessor.

    Produces a parsed tree with executable and embedded content removed,
    ready for the readability heuristic in the Extractor.
    """

    # Elements that never carry readable article text
    REMOVE_ELEMENTS = ['script', 'style', 'noscript', 'template', 'iframe',
                       'object', 'embed', 'svg', 'canvas', 'form', 'button',
                       'input', 'select', 'textarea', 'meta', 'link']

    def __init__(
        self,
        max_chars: int = DEFAULT_MAX_MARKUP_CHARS,
        oversize_policy: OversizePolicy = OversizePolicy.TRUNCATE,
        max_depth: int = DEFAULT_MAX_NESTING_DEPTH
    ):
        """
        Initialize preprocessor.

        Args:
            max_chars: Longest markup accepted for parsing
            oversize_policy: Truncate at the exceeded limit, or reject the body outright
            max_depth: Deepest element nesting accepted for parsing
        """
        self.max_chars = max_chars
        self.oversize_policy = oversize_policy
        self.max_depth = max_depth

    def _sanitize_markup(self, markup: str) -> tuple[str, list[str]]:
        """
        Sanitize raw markup before parsing.

        Fixes common malformations at the string level so parsers
        don't choke on them.

        Returns:
            Tuple of (sanitized markup, list of warnings)
        """
        warnings = []
        sanitized = markup

        # 1. Lone surrogates (from bad copy-paste) can't be encoded; replace them.
        try:
            sanitized = sanitized.encode('utf-8', errors='replace').decode('utf-8')
        except UnicodeError as e:
            raise PreprocessorError(f"Could not normalise encoding: {e}")

        # 2. NULL bytes crash many parsers and are never valid in text content.
        if '\x00' in sanitized:
            sanitized = sanitized.replace('\x00', '')
            warnings.append("Removed NULL bytes")

        # 3. Double angle brackets (e.g. <<p>>) appear in copy-paste corruption.
        double_bracket_pattern = r'<{2,}(\/?[a-zA-Z][^>]*?)>{2,}'
        if re.search(double_bracket_pattern, sanitized):
            sanitized = re.sub(double_bracket_pattern, r'<\1>', sanitized)
            warnings.append("Fixed double angle brackets")

        # 4. Stray '<' not followed by a tag name (e.g. "a < b") is literal text.
        stray_brackets = r'<(?![a-zA-Z\/!])'
        if re.search(stray_brackets, sanitized):
            sanitized = re.sub(stray_brackets, '&lt;', sanitized)
            warnings.append("Escaped stray angle brackets")

        # 5. Double-equals in attributes (href=="/path") is a common editor bug.
        malformed_attr_pattern = r'(\w+)==(["\'])'
        if re.search(malformed_attr_pattern, sanitized):
            sanitized = re.sub(malformed_attr_pattern, r'\1=\2', sanitized)
            warnings.append("Fixed malformed attributes (double equals)")

        # 6. Normalize line endings.
        sanitized = sanitized.replace('\r\n', '\n').replace('\r', '\n')

        # 7. Strip control characters (except tab/newline).
        control_chars = ''.join(
            chr(c) for c in range(32) if c not in (9, 10, 13)
        )
        if any(c in sanitized for c in control_chars):
            sanitized = sanitized.translate(str.maketrans('', '', control_chars))
            warnings.append("Removed control characters")

        logger.debug(f"Sanitization complete. {len(warnings)} fixes applied.")
        return sanitized, warnings

    def _enforce_size_cap(self, markup: str) -> tuple[Optional[str], list[str]]:
        """Apply the oversize policy. Returns (markup or None if rejected, warnings)."""
        if len(markup) <= self.max_chars:
            return markup, []

        if self.oversize_policy == OversizePolicy.REJECT:
            logger.warning(
                f"Markup of {len(markup)} chars exceeds limit {self.max_chars}, rejected"
            )
            return None, [f"Markup rejected: {len(markup)} chars exceeds {self.max_chars}"]

        logger.warning(
            f"Markup of {len(markup)} chars exceeds limit {self.max_chars}, truncated"
        )
        return markup[:self.max_chars], [f"Markup truncated to {self.max_chars} chars"]

    def _find_nesting_overflow(self, markup: str) -> Optional[int]:
        """
        Offset of the first open tag nested deeper than max_depth, or None.

        One pass over the tags with a stack of open element names. A close
        tag pops back to its matching open tag; a close tag with nothing to
        match is ignored, as html parsers ignore it.
        """
        stack = []
        open_counts = Counter()
        pos = 0

        while True:
            match = TAG_PATTERN.search(markup, pos)
            if match is None:
                return None
            pos = match.end()

            if match.group(2) is None:
                # Comment: skip to its end (an unclosed one runs to EOF)
                end = markup.find('-->', pos)
                if end == -1:
                    return None
                pos = end + 3
                continue

            name = match.group(2).lower()
            if name in VOID_ELEMENTS or name in IMPLICITLY_CLOSED:
                continue

            if match.group(1):
                if open_counts[name]:
                    while stack:
                        top = stack.pop()
                        open_counts[top] -= 1
                        if top == name:
                            break
                continue

            if match.group(0).endswith('/>'):
                continue

            if name in RAW_TEXT_CLOSERS:
                closer = RAW_TEXT_CLOSERS[name].search(markup, pos)
                if closer is None:
                    return None
                pos = closer.end()
                continue

            if len(stack) >= self.max_depth:
                return match.start()
            stack.append(name)
            open_counts[name] += 1

    def _enforce_depth_cap(self, markup: str) -> tuple[Optional[str], list[str]]:
        """Apply the oversize policy to nesting depth. Returns (markup or None if rejected, warnings)."""
        offset = self._find_nesting_overflow(markup)
        if offset is None:
            return markup, []

        if self.oversize_policy == OversizePolicy.REJECT:
            logger.warning(
                f"Markup nests deeper than {self.max_depth} levels at offset {offset}, rejected"
            )
            return None, [f"Markup rejected: nesting deeper than {self.max_depth} levels"]

        logger.warning(
            f"Markup nests deeper than {self.max_depth} levels at offset {offset}, truncated"
        )
        return markup[:offset], [f"Markup truncated at nesting depth {self.max_depth}"]

    def _parse(self, markup: str, warnings: list) -> BeautifulSoup:
        # --- Parser fallback chain: html5lib → lxml → html.parser ---
        # html5lib implements the WHATWG algorithm and rebalances the worst
        # misnesting; lxml is faster but less forgiving; html.parser ships
        # with Python and is the last resort.
        try:
            return BeautifulSoup(markup, 'html5lib')
        except Exception as e:
            logger.warning(f"html5lib parsing failed, trying lxml: {e}")
            warnings.append(f"html5lib parsing failed: {e}")

        try:
            return BeautifulSoup(markup, 'lxml')
        except Exception as e:
            logger.warning(f"lxml parsing also failed: {e}")
            warnings.append(f"lxml parsing failed: {e}")

        return BeautifulSoup(markup, 'html.parser')

    def process(self, markup: str) -> dict:
        """
        Process raw markup and return a cleaned tree.

        Returns:
            dict with:
                - soup: Parsed and cleaned BeautifulSoup tree (None if rejected)
                - sanitized_markup: Markup after string-level fixes
                - truncated: Whether a size or depth cap cut the input
                - rejected: Whether a size or depth cap refused the input
                - removed_elements: Count of non-content elements removed
                - warnings: List of warnings encountered
        """
        warnings = []
        original_length = len(markup)

        capped, cap_warnings = self._enforce_size_cap(markup)
        warnings.extend(cap_warnings)
        if capped is None:
            return self._rejected(warnings)

        try:
            sanitized, sanitize_warnings = self._sanitize_markup(capped)
            warnings.extend(sanitize_warnings)
        except PreprocessorError as e:
            # Non-fatal: parse the capped markup as-is
            logger.warning(f"Sanitization skipped: {e.message}")
            warnings.append(f"Sanitization skipped: {e.message}")
            sanitized = capped

        # Depth is checked on the sanitized string, which is what gets parsed
        shallow, depth_warnings = self._enforce_depth_cap(sanitized)
        warnings.extend(depth_warnings)
        if shallow is None:
            return self._rejected(warnings)

        soup = self._parse(shallow, warnings)

        self._remove_comments(soup)
        removed = self._remove_non_content(soup)

        return {
            "soup": soup,
            "sanitized_markup": shallow,
            "truncated": len(capped) < original_length or len(shallow) < len(sanitized),
            "rejected": False,
            "removed_elements": removed,
            "warnings": warnings
        }

    def _rejected(self, warnings: list) -> dict:
        return {
            "soup": None,
            "sanitized_markup": "",
            "truncated": False,
            "rejected": True,
            "removed_elements": 0,
            "warnings": warnings
        }

    def _remove_comments(self, soup: BeautifulSoup) -> int:
        """Remove markup comments. Returns count of removed comments."""
        comments = soup.find_all(string=lambda text: isinstance(text, Comment))
        for comment in comments:
            comment.extract()
        return len(comments)

    def _remove_non_content(self, soup: BeautifulSoup) -> int:
        """Decompose elements that never hold readable text. Returns count removed."""
        count = 0
        for elem in soup.find_all(self.REMOVE_ELEMENTS):
            # A parent removed earlier in the loop has already taken this one with it
            if elem.decomposed:
                continue
            elem.decompose()
            count += 1
        return count


def preprocess(markup: str, max_chars: int = DEFAULT_MAX_MARKUP_CHARS,
               oversize_policy: OversizePolicy = OversizePolicy.TRUNCATE,
               max_depth: int = DEFAULT_MAX_NESTING_DEPTH) -> dict:
    """Convenience function to preprocess markup."""
    return Preprocessor(max_chars, oversize_policy, max_depth).process(markup)
