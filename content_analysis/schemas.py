"""
Pydantic schemas defining the contracts between stages and with callers.

Data flow through the pipeline:
  markup → Extractor → ExtractedText
  ExtractedText → {metrics, indexer, classifier} → AnalysisResult
  ContentPayload + AnalysisResult → ContentService → ContentRecord

AnalysisResult is the only model the analysis core hands out; it serialises
to the camelCase shape the API layer returns (wordCount, readingTime, ...).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNCATEGORIZED = "Uncategorized"

# Hard ceiling on auto-tags per body
MAX_AUTO_TAGS = 5


# --- Taxonomy ---

class CategoryDefinition(BaseModel):
    """A taxonomy entry: a category name and the keywords that select it."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    keywords: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("category name must not be blank")
        return value

    @field_validator("keywords", mode="before")
    @classmethod
    def normalize_keywords(cls, value):
        # Keywords are matched against lowercase tokens, so normalise once here
        if value is None:
            return frozenset()
        if isinstance(value, str):
            value = [value]
        return frozenset(
            str(k).strip().lower() for k in value if str(k).strip()
        )


# --- Stage outputs ---

class ExtractedText(BaseModel):
    """Output of the Extractor: plain readable text plus an optional title."""
    text: str = ""
    title: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)  # Non-fatal issues met during extraction

    def is_empty(self) -> bool:
        return not self.text.strip()


class TextMetrics(BaseModel):
    """Word count and estimated reading time (minutes)."""
    word_count: int = Field(default=0, ge=0)
    reading_time: int = Field(default=0, ge=0)


class TermWeight(BaseModel):
    """One row of a document's term-weight table."""
    term: str
    weight: float


class AnalysisResult(BaseModel):
    """The composite analysis of one markup body."""
    model_config = ConfigDict(populate_by_name=True)

    word_count: int = Field(default=0, ge=0, alias="wordCount")
    reading_time: int = Field(default=0, ge=0, alias="readingTime")
    auto_tags: list[str] = Field(default_factory=list, alias="autoTags")
    suggested_category: str = Field(default=UNCATEGORIZED, alias="suggestedCategory")

    @field_validator("auto_tags")
    @classmethod
    def check_tags(cls, value: list[str]) -> list[str]:
        if len(value) > MAX_AUTO_TAGS:
            raise ValueError(f"at most {MAX_AUTO_TAGS} auto-tags allowed, got {len(value)}")
        if len(set(value)) != len(value):
            raise ValueError("auto-tags must be unique")
        return value

    @field_validator("suggested_category")
    @classmethod
    def check_category(cls, value: str) -> str:
        return value if value and value.strip() else UNCATEGORIZED

    def to_response(self) -> dict:
        """Convert to the camelCase response format used by the preview endpoint."""
        return self.model_dump(by_alias=True)

    def to_content_fields(self) -> dict:
        """Map onto the fields a stored content record carries."""
        return {
            "auto_tags": list(self.auto_tags),
            "category": self.suggested_category,
            "optimization": {
                "word_count": self.word_count,
                "reading_time": self.reading_time,
            },
        }


# --- Content payloads (validated at the boundary) ---

class ContentStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class SeoMetadata(BaseModel):
    seo_title: Optional[str] = None
    meta_description: Optional[str] = None


class ContentPayload(BaseModel):
    """Content as submitted by an author, before analysis."""
    title: str = Field(min_length=1)
    body: str = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)
    status: ContentStatus = ContentStatus.DRAFT
    metadata: SeoMetadata = Field(default_factory=SeoMetadata)

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        seen = []
        for tag in value:
            tag = str(tag).strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


class UploadedFile(BaseModel):
    """A file received alongside a payload, still on local disk."""
    path: str
    filename: Optional[str] = None
    content_type: Optional[str] = None


class Optimization(BaseModel):
    readability_score: Optional[float] = None
    seo_score: Optional[float] = None
    word_count: int = 0
    reading_time: int = 0


class ContentRecord(BaseModel):
    """A content record ready to be handed to the persistence layer."""
    title: str
    body: str
    author_id: str
    featured_image: Optional[str] = None
    category: str = UNCATEGORIZED
    tags: list[str] = Field(default_factory=list)
    auto_tags: list[str] = Field(default_factory=list)
    optimization: Optimization = Field(default_factory=Optimization)
    metadata: SeoMetadata = Field(default_factory=SeoMetadata)
    status: ContentStatus = ContentStatus.DRAFT
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
