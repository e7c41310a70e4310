"""
Content Analysis Engine

Enriches an authored body with reading metrics, auto-tags and a suggested
category.
- Preprocessor: String-level sanitization and non-content removal
- Extractor:    Readability heuristic, markup → plain text
- Metrics:      Word count and reading time
- Indexer:      Term weighting for auto-tags
- Classifier:   Keyword matching against the taxonomy

Public API surface:
  Orchestration  — ContentAnalyzer, analyze_markup, analyze_text, ContentService
  Pipeline parts — Preprocessor, Extractor, TermWeightIndexer, compute_metrics, classify
  Collaborators  — TaxonomyRepository (+ in-memory/JSON), MediaUploader (+ local)
  Data models    — AnalysisResult, CategoryDefinition, ExtractedText, ContentPayload, ...
  Configuration  — AnalysisSettings, KeywordScoring, OversizePolicy
  Error types    — TaxonomyFetchError, MediaUploadError, InvalidPayloadError, ...
"""

# --- Pipeline stages ---
from .preprocessor import Preprocessor
from .extractor import Extractor
from .metrics import compute_metrics, count_words, reading_time
from .indexer import TermWeightIndexer, rank_terms, tokenize
from .classifier import classify

# --- Orchestration ---
from .main import ContentAnalyzer, analyze_markup, analyze_text
from .content import ContentService, MediaUploader, LocalMediaUploader

# --- Collaborators ---
from .taxonomy import TaxonomyRepository, InMemoryTaxonomyRepository, JsonTaxonomyRepository

# --- Data models ---
from .schemas import (
    UNCATEGORIZED,
    AnalysisResult,
    CategoryDefinition,
    ContentPayload,
    ContentRecord,
    ContentStatus,
    ExtractedText,
    SeoMetadata,
    TermWeight,
    TextMetrics,
    UploadedFile,
)

# --- Configuration ---
from .config import AnalysisSettings, KeywordScoring, OversizePolicy

# --- Exceptions ---
from .exceptions import (
    ContentAnalysisError,
    ExtractionError,
    InvalidPayloadError,
    MediaUploadError,
    TaxonomyFetchError,
)

__version__ = "0.1.0"
__all__ = [
    "Preprocessor",
    "Extractor",
    "compute_metrics",
    "count_words",
    "reading_time",
    "TermWeightIndexer",
    "rank_terms",
    "tokenize",
    "classify",
    "ContentAnalyzer",
    "analyze_markup",
    "analyze_text",
    "ContentService",
    "MediaUploader",
    "LocalMediaUploader",
    "TaxonomyRepository",
    "InMemoryTaxonomyRepository",
    "JsonTaxonomyRepository",
    "UNCATEGORIZED",
    "AnalysisResult",
    "CategoryDefinition",
    "ContentPayload",
    "ContentRecord",
    "ContentStatus",
    "ExtractedText",
    "SeoMetadata",
    "TermWeight",
    "TextMetrics",
    "UploadedFile",
    "AnalysisSettings",
    "KeywordScoring",
    "OversizePolicy",
    "ContentAnalysisError",
    "ExtractionError",
    "InvalidPayloadError",
    "MediaUploadError",
    "TaxonomyFetchError",
]
