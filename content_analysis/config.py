"""
Runtime settings for the content analysis engine.

Settings are a plain pydantic model so they can be built explicitly in code
or tests, and from_env() reads the CONTENT_ANALYSIS_* environment variables
(after loading a .env file, if present) for deployed callers.
"""

import logging
import os
from enum import Enum
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .logger import get_module_logger

logger = get_module_logger("config")

ENV_PREFIX = "CONTENT_ANALYSIS_"

# Reading-speed assumption used for reading time (words per minute)
DEFAULT_WORDS_PER_MINUTE = 200

# Number of auto-tags attached to each analysed body
DEFAULT_TOP_TAGS = 5

# Markup beyond this many characters is truncated (or rejected) before parsing
# so a pathological document cannot exhaust the parser.
DEFAULT_MAX_MARKUP_CHARS = 500_000

# Open tags nested deeper than this are cut (or rejected) before parsing;
# tree building and scoring cost grow with depth, not only with length.
DEFAULT_MAX_NESTING_DEPTH = 512


class OversizePolicy(Enum):
    """What to do with markup longer than max_markup_chars or nested deeper than max_nesting_depth."""
    TRUNCATE = "truncate"   # Cut the markup at the limit that was exceeded
    REJECT = "reject"       # Skip parsing entirely, extraction yields ""


class KeywordScoring(Enum):
    """How a category's keywords are scored against a body."""
    PRESENCE = "presence"     # Each keyword found anywhere counts once
    FREQUENCY = "frequency"   # Each occurrence of a keyword counts


class AnalysisSettings(BaseModel):
    """Tunable knobs for one ContentAnalyzer."""
    max_markup_chars: int = Field(default=DEFAULT_MAX_MARKUP_CHARS, gt=0)
    max_nesting_depth: int = Field(default=DEFAULT_MAX_NESTING_DEPTH, gt=0)
    oversize_policy: OversizePolicy = OversizePolicy.TRUNCATE
    words_per_minute: int = Field(default=DEFAULT_WORDS_PER_MINUTE, gt=0)
    top_tags: int = Field(default=DEFAULT_TOP_TAGS, ge=0, le=DEFAULT_TOP_TAGS)
    keyword_scoring: KeywordScoring = KeywordScoring.PRESENCE
    keep_stop_words: bool = False
    parallel: bool = False    # Run metrics/ranking/classification on a thread pool
    log_level: int = logging.INFO

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "AnalysisSettings":
        """
        Build settings from CONTENT_ANALYSIS_* environment variables.

        Malformed values are logged and replaced by the default rather than
        failing startup.
        """
        load_dotenv(env_file)
        defaults = cls()

        return cls(
            max_markup_chars=_env_int("MAX_MARKUP_CHARS", defaults.max_markup_chars),
            max_nesting_depth=_env_int("MAX_NESTING_DEPTH", defaults.max_nesting_depth),
            oversize_policy=_env_enum("OVERSIZE_POLICY", OversizePolicy, defaults.oversize_policy),
            words_per_minute=_env_int("WORDS_PER_MINUTE", defaults.words_per_minute),
            top_tags=min(_env_int("TOP_TAGS", defaults.top_tags), DEFAULT_TOP_TAGS),
            keyword_scoring=_env_enum("KEYWORD_SCORING", KeywordScoring, defaults.keyword_scoring),
            keep_stop_words=_env_bool("KEEP_STOP_WORDS", defaults.keep_stop_words),
            parallel=_env_bool("PARALLEL", defaults.parallel),
            log_level=_env_log_level("LOG_LEVEL", defaults.log_level),
        )


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {ENV_PREFIX}{name} '{raw}', using {default}")
        return default
    if value <= 0:
        logger.warning(f"{ENV_PREFIX}{name} must be positive, using {default}")
        return default
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    logger.warning(f"Invalid {ENV_PREFIX}{name} '{raw}', using {default}")
    return default


def _env_enum(name: str, enum_cls, default):
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        logger.warning(f"Unknown {ENV_PREFIX}{name} '{raw}', defaulting to {default.value}")
        return default


def _env_log_level(name: str, default: int) -> int:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    level = logging.getLevelName(raw.strip().upper())
    if isinstance(level, int):
        return level
    logger.warning(f"Unknown {ENV_PREFIX}{name} '{raw}', using {logging.getLevelName(default)}")
    return default
