"""
Main orchestrator for the content analysis engine.

Coordinates extraction and the three independent downstream computations:

    markup → Extractor → text ┬→ metrics     (word count, reading time)
                              ├→ indexer     (auto-tags)
                              └→ classifier  (suggested category, needs taxonomy)

The downstream stages only read the extracted text (and a taxonomy
snapshot), so they may run concurrently; nothing is visible to the caller
until all three are merged into one AnalysisResult.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence, TypeVar

from .classifier import classify
from .config import AnalysisSettings
from .exceptions import TaxonomyFetchError
from .extractor import Extractor
from .indexer import TermWeightIndexer
from .metrics import compute_metrics
from .schemas import AnalysisResult, CategoryDefinition, TextMetrics, UNCATEGORIZED
from .taxonomy import TaxonomyRepository
from .logger import get_module_logger, setup_logger

logger = get_module_logger("main")

T = TypeVar("T")


def _run_stage(name: str, func: Callable[[], T], default: T) -> T:
    """Run one pure stage; an internal fault degrades to the stage default."""
    try:
        return func()
    except Exception as e:
        logger.error(f"{name} failed, using default: {e}", exc_info=True)
        return default


def analyze_text(
    text: str,
    categories: Sequence[CategoryDefinition],
    settings: Optional[AnalysisSettings] = None
) -> AnalysisResult:
    """
    Analyze already-extracted plain text against a taxonomy snapshot.

    Builds a fresh indexer and token set for this call only.
    """
    settings = settings or AnalysisSettings()
    indexer = TermWeightIndexer(keep_stop_words=settings.keep_stop_words)

    stages = {
        "metrics": (lambda: compute_metrics(text, settings.words_per_minute), TextMetrics()),
        "ranking": (lambda: indexer.rank_terms(text, settings.top_tags), []),
        "classification": (lambda: classify(text, categories, settings.keyword_scoring), UNCATEGORIZED),
    }

    if settings.parallel:
        with ThreadPoolExecutor(max_workers=len(stages),
                                thread_name_prefix="content-analysis") as pool:
            futures = {
                name: pool.submit(_run_stage, name, func, default)
                for name, (func, default) in stages.items()
            }
            outputs = {name: future.result() for name, future in futures.items()}
    else:
        outputs = {
            name: _run_stage(name, func, default)
            for name, (func, default) in stages.items()
        }

    text_metrics = outputs["metrics"]
    return AnalysisResult(
        word_count=text_metrics.word_count,
        reading_time=text_metrics.reading_time,
        auto_tags=outputs["ranking"],
        suggested_category=outputs["classification"],
    )


def analyze_markup(
    markup: str,
    categories: Sequence[CategoryDefinition],
    settings: Optional[AnalysisSettings] = None
) -> AnalysisResult:
    """
    Analyze a markup body against a taxonomy snapshot.

    Pure function of (markup, categories): no taxonomy read, no shared state.
    Empty or whitespace-only markup returns the default result without
    running any stage.
    """
    if not markup or not markup.strip():
        return AnalysisResult()

    settings = settings or AnalysisSettings()
    extractor = Extractor.from_settings(settings)
    extracted = extractor.extract(markup)
    for warning in extracted.warnings:
        logger.debug(f"Extraction warning: {warning}")

    return analyze_text(extracted.text, categories, settings)


class ContentAnalyzer:
    """
    Analysis entry point used by content creation and live preview.

    Reads the taxonomy from its repository once per analysis. A failed read
    raises TaxonomyFetchError; whether that is fatal is the caller's call.
    """

    def __init__(
        self,
        taxonomy: TaxonomyRepository,
        settings: Optional[AnalysisSettings] = None,
        log_level: int = None
    ):
        self.taxonomy = taxonomy
        self.settings = settings or AnalysisSettings()

        if log_level is not None:
            setup_logger(level=log_level)

        logger.info(f"ContentAnalyzer initialized "
                    f"(scoring={self.settings.keyword_scoring.value}, "
                    f"parallel={self.settings.parallel})")

    def fetch_categories(self) -> list[CategoryDefinition]:
        """Read the current taxonomy, normalising any repository fault."""
        try:
            return list(self.taxonomy.list_all())
        except TaxonomyFetchError:
            raise
        except Exception as e:
            raise TaxonomyFetchError(
                f"Taxonomy source failed: {e}",
                source=type(self.taxonomy).__name__,
                details={"error": str(e)}
            ) from e

    def analyze(self, markup: str, fail_on_taxonomy_error: bool = True) -> AnalysisResult:
        """
        Analyze a markup body.

        Args:
            markup: Raw markup as authored
            fail_on_taxonomy_error: Raise when the taxonomy cannot be read
                (default), or classify against an empty taxonomy instead

        Returns:
            AnalysisResult (all defaults for empty input)

        Raises:
            TaxonomyFetchError: if the taxonomy could not be read and
                fail_on_taxonomy_error is set
        """
        if not markup or not markup.strip():
            logger.debug("Empty markup, returning default analysis")
            return AnalysisResult()

        logger.info(f"Analyzing {len(markup)} chars of markup")

        extracted = Extractor.from_settings(self.settings).extract(markup)
        for warning in extracted.warnings:
            logger.debug(f"Extraction warning: {warning}")

        try:
            categories = self.fetch_categories()
        except TaxonomyFetchError as e:
            if fail_on_taxonomy_error:
                raise
            logger.warning(f"Taxonomy unavailable, proceeding uncategorized: {e.message}")
            categories = []

        result = analyze_text(extracted.text, categories, self.settings)

        logger.info(f"Complete: {result.word_count} words, "
                    f"category '{result.suggested_category}', "
                    f"{len(result.auto_tags)} tags")
        return result

    def preview(self, markup: str) -> dict:
        """Analyze for the live preview endpoint; returns the camelCase response."""
        return self.analyze(markup).to_response()


def analyze(markup: str, taxonomy: TaxonomyRepository,
            settings: Optional[AnalysisSettings] = None) -> AnalysisResult:
    """Convenience function to analyze markup against a taxonomy repository."""
    return ContentAnalyzer(taxonomy, settings).analyze(markup)
