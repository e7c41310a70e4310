"""
Tests for the collaborators around the analysis core: taxonomy sources,
settings, payload validation and content record preparation.
"""

import json
import logging

import pytest

from content_analysis.config import AnalysisSettings, KeywordScoring, OversizePolicy
from content_analysis.content import ContentService, LocalMediaUploader, MediaUploader
from content_analysis.exceptions import InvalidPayloadError, MediaUploadError, TaxonomyFetchError
from content_analysis.extractor import Extractor
from content_analysis.main import ContentAnalyzer
from content_analysis.schemas import ContentStatus, UploadedFile, UNCATEGORIZED
from content_analysis.taxonomy import InMemoryTaxonomyRepository, JsonTaxonomyRepository, TaxonomyRepository

ARTICLE_BODY = """
<article>
  <h2>Training for a marathon</h2>
  <p>Marathon training takes months of steady running, and every runner needs rest days,
     good shoes and a plan that builds distance slowly.</p>
  <p>Most runners add one long run per week to their training plan.</p>
</article>
"""

TAXONOMY = [
    {"name": "Technology", "keywords": ["software", "python", "cloud"]},
    {"name": "Sports", "keywords": ["marathon", "running", "runner", "football"]},
]


class BrokenTaxonomy(TaxonomyRepository):
    def list_all(self):
        raise TaxonomyFetchError("database down", source="categories")


class EmptyUrlUploader(MediaUploader):
    def upload(self, path, public_id, folder):
        return ""


@pytest.fixture
def service(tmp_path):
    analyzer = ContentAnalyzer(InMemoryTaxonomyRepository(TAXONOMY))
    return ContentService(analyzer, uploader=LocalMediaUploader(tmp_path / "media"))


# --- Taxonomy sources ---

def test_json_taxonomy_reads_list_and_wrapped_forms(tmp_path):
    plain = tmp_path / "plain.json"
    plain.write_text(json.dumps(TAXONOMY))
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"categories": TAXONOMY}))

    for path in (plain, wrapped):
        categories = JsonTaxonomyRepository(path).list_all()
        assert [c.name for c in categories] == ["Technology", "Sports"]
        assert "marathon" in categories[1].keywords


def test_json_taxonomy_is_reread_on_every_call(tmp_path):
    path = tmp_path / "taxonomy.json"
    path.write_text(json.dumps(TAXONOMY[:1]))
    repository = JsonTaxonomyRepository(path)
    assert len(repository.list_all()) == 1

    path.write_text(json.dumps(TAXONOMY))
    assert len(repository.list_all()) == 2


def test_json_taxonomy_empty_is_not_an_error(tmp_path):
    path = tmp_path / "taxonomy.json"
    path.write_text("[]")
    assert JsonTaxonomyRepository(path).list_all() == []


@pytest.mark.parametrize("content", ["{not json", '"a string"', '[{"keywords": ["x"]}]', "[1, 2]"])
def test_json_taxonomy_bad_content_raises(tmp_path, content):
    path = tmp_path / "taxonomy.json"
    path.write_text(content)

    with pytest.raises(TaxonomyFetchError) as exc_info:
        JsonTaxonomyRepository(path).list_all()
    assert exc_info.value.source == str(path)


def test_json_taxonomy_missing_file_raises(tmp_path):
    with pytest.raises(TaxonomyFetchError, match="not found"):
        JsonTaxonomyRepository(tmp_path / "missing.json").list_all()


def test_in_memory_taxonomy_accepts_dicts():
    categories = InMemoryTaxonomyRepository(TAXONOMY).list_all()
    assert categories[0].name == "Technology"
    assert categories[0].keywords == frozenset({"software", "python", "cloud"})


# --- Settings ---

def test_settings_defaults():
    settings = AnalysisSettings()
    assert settings.words_per_minute == 200
    assert settings.top_tags == 5
    assert settings.keyword_scoring == KeywordScoring.PRESENCE
    assert settings.oversize_policy == OversizePolicy.TRUNCATE
    assert settings.parallel is False
    assert settings.max_nesting_depth == 512


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("CONTENT_ANALYSIS_WORDS_PER_MINUTE", "250")
    monkeypatch.setenv("CONTENT_ANALYSIS_KEYWORD_SCORING", "Frequency")
    monkeypatch.setenv("CONTENT_ANALYSIS_OVERSIZE_POLICY", "reject")
    monkeypatch.setenv("CONTENT_ANALYSIS_PARALLEL", "yes")
    monkeypatch.setenv("CONTENT_ANALYSIS_LOG_LEVEL", "debug")
    monkeypatch.setenv("CONTENT_ANALYSIS_MAX_NESTING_DEPTH", "64")

    settings = AnalysisSettings.from_env()

    assert settings.words_per_minute == 250
    assert settings.keyword_scoring == KeywordScoring.FREQUENCY
    assert settings.oversize_policy == OversizePolicy.REJECT
    assert settings.parallel is True
    assert settings.log_level == logging.DEBUG
    assert settings.max_nesting_depth == 64


def test_settings_from_env_falls_back_on_bad_values(monkeypatch):
    monkeypatch.setenv("CONTENT_ANALYSIS_TOP_TAGS", "lots")
    monkeypatch.setenv("CONTENT_ANALYSIS_MAX_MARKUP_CHARS", "-5")
    monkeypatch.setenv("CONTENT_ANALYSIS_KEYWORD_SCORING", "magic")
    monkeypatch.setenv("CONTENT_ANALYSIS_KEEP_STOP_WORDS", "maybe")

    settings = AnalysisSettings.from_env()

    assert settings.top_tags == 5
    assert settings.max_markup_chars == 500_000
    assert settings.keyword_scoring == KeywordScoring.PRESENCE
    assert settings.keep_stop_words is False


def test_settings_cap_top_tags(monkeypatch):
    monkeypatch.setenv("CONTENT_ANALYSIS_TOP_TAGS", "50")
    assert AnalysisSettings.from_env().top_tags == 5


# --- Content service ---

def test_prepare_maps_analysis_onto_record(service):
    record = service.prepare(
        {
            "title": "  Marathon basics ",
            "body": ARTICLE_BODY,
            "tags": ["running", " running ", "", "health"],
            "status": "published",
            "metadata": {"seo_title": "Marathon basics", "meta_description": "How to train"},
        },
        author_id="author-1",
    )

    assert record.title == "Marathon basics"
    assert record.tags == ["running", "health"]
    assert record.status == ContentStatus.PUBLISHED
    assert record.category == "Sports"
    assert record.featured_image is None
    assert record.optimization.word_count > 0
    assert record.optimization.reading_time == 1
    assert "training" in record.auto_tags
    assert record.metadata.seo_title == "Marathon basics"


def test_prepare_uploads_featured_image(service, tmp_path):
    image = tmp_path / "cover.png"
    image.write_bytes(b"\x89PNG fake image")

    record = service.prepare(
        {"title": "Cover", "body": ARTICLE_BODY},
        author_id="a42",
        file=UploadedFile(path=str(image), filename="cover.png"),
    )

    assert record.featured_image.startswith("/media/content_images/content_a42_")
    assert record.featured_image.endswith(".png")
    stored = list((tmp_path / "media" / "content_images").iterdir())
    assert len(stored) == 1
    assert stored[0].read_bytes() == b"\x89PNG fake image"


def test_prepare_fails_when_upload_returns_no_url():
    analyzer = ContentAnalyzer(InMemoryTaxonomyRepository(TAXONOMY))
    service = ContentService(analyzer, uploader=EmptyUrlUploader())

    with pytest.raises(MediaUploadError):
        service.prepare({"title": "t", "body": "b"}, "a1", file=UploadedFile(path="/tmp/x.png"))


def test_prepare_fails_when_uploaded_file_is_missing(service, tmp_path):
    with pytest.raises(MediaUploadError):
        service.prepare({"title": "t", "body": "b"}, "a1",
                        file=UploadedFile(path=str(tmp_path / "nope.png")))


@pytest.mark.parametrize("payload", [
    {"body": "text"},
    {"title": "   ", "body": "text"},
    {"title": "ok", "body": ""},
    {"title": "ok", "body": "text", "status": "deleted"},
])
def test_prepare_rejects_invalid_payloads(service, payload):
    with pytest.raises(InvalidPayloadError) as exc_info:
        service.prepare(payload, "a1")
    assert exc_info.value.errors
    assert exc_info.value.to_response()["error"] == "InvalidPayloadError"


def test_prepare_taxonomy_failure_policy():
    strict = ContentService(ContentAnalyzer(BrokenTaxonomy()))
    with pytest.raises(TaxonomyFetchError):
        strict.prepare({"title": "t", "body": ARTICLE_BODY}, "a1")

    lenient = ContentService(ContentAnalyzer(BrokenTaxonomy()), fail_on_taxonomy_error=False)
    record = lenient.prepare({"title": "t", "body": ARTICLE_BODY}, "a1")
    assert record.category == UNCATEGORIZED
    assert record.optimization.word_count > 0
    assert record.auto_tags


def test_prepare_lenient_taxonomy_failure_extracts_once(monkeypatch):
    calls = []
    original_extract = Extractor.extract

    def counting_extract(self, markup):
        calls.append(markup)
        return original_extract(self, markup)

    monkeypatch.setattr(Extractor, "extract", counting_extract)
    lenient = ContentService(ContentAnalyzer(BrokenTaxonomy()), fail_on_taxonomy_error=False)

    record = lenient.prepare({"title": "t", "body": ARTICLE_BODY}, "a1")

    assert len(calls) == 1
    assert record.category == UNCATEGORIZED
    assert "training" in record.auto_tags


def test_preview_does_not_need_uploader(service):
    assert service.preview("")["suggestedCategory"] == UNCATEGORIZED
    assert service.preview(ARTICLE_BODY)["suggestedCategory"] == "Sports"
