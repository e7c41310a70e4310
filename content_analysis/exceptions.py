"""
Custom exceptions for the content analysis engine.

Error philosophy:
  - TaxonomyFetchError  → FAIL HARD: surfaced to the caller, who decides whether
                          to proceed with "Uncategorized" or abort.
  - MediaUploadError    → FAIL HARD: content creation cannot continue without the image URL.
  - InvalidPayloadError → FAIL HARD at the boundary: the payload never reaches analysis.
  - ExtractionError     → PARTIAL RETURN: caught inside the extractor, text degrades to "".
  - PreprocessorError   → NON-FATAL: raw markup passes through, warning logged.

Analysis is a best-effort enrichment step, so only collaborator failures
(taxonomy source, media store) and bad payloads ever leave the package.
"""

from typing import Optional


class ContentAnalysisError(Exception):
    """Base exception for all content analysis errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_response(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details
        }


# --- FAIL HARD: surfaced to the caller ---

class TaxonomyFetchError(ContentAnalysisError):
    """
    Raised when the taxonomy source cannot be read.

    Distinct from "no categories configured": an empty taxonomy is a valid
    answer that yields "Uncategorized", an unreachable one is not.
    """

    def __init__(
        self,
        message: str,
        source: str = "",
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.source = source  # Repository description, e.g. a file path

    def to_response(self) -> dict:
        response = super().to_response()
        response["source"] = self.source
        return response


class MediaUploadError(ContentAnalysisError):
    """Raised when the media store rejects an upload or returns no URL."""
    pass


class InvalidPayloadError(ContentAnalysisError):
    """Raised when a content payload fails validation at the boundary."""

    def __init__(
        self,
        message: str,
        errors: Optional[list] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.errors = errors or []

    def to_response(self) -> dict:
        response = super().to_response()
        response["errors"] = self.errors
        return response


# --- PARTIAL RETURN: the extractor converts this into empty text ---

class ExtractionError(ContentAnalysisError):
    """
    Raised inside the extractor when the markup cannot be turned into text.

    Never escapes Extractor.extract(); it is logged and converted into an
    empty ExtractedText carrying the message as a warning.
    """

    def __init__(
        self,
        message: str,
        partial_text: str = "",
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.partial_text = partial_text


# --- NON-FATAL: preprocessing issues don't stop anything ---

class PreprocessorError(ContentAnalysisError):
    """
    Raised when the preprocessor encounters an error.

    Non-fatal - passes through raw markup and logs warning.
    """
    pass
