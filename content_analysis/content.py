"""
Content record preparation.

Turns an author's submission into a record ready for storage: validates the
payload, uploads the optional featured image, analyses the body and maps
the analysis onto the record's auto_tags/category/optimization fields.
Storing the record is the persistence layer's job.
"""

import shutil
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from .exceptions import InvalidPayloadError, MediaUploadError
from .main import ContentAnalyzer
from .schemas import ContentPayload, ContentRecord, Optimization, UploadedFile
from .logger import get_module_logger

logger = get_module_logger("content")

FEATURED_IMAGE_FOLDER = "content_images"


class MediaUploader(ABC):
    """Abstract media store."""

    @abstractmethod
    def upload(self, path: str, public_id: str, folder: str) -> str:
        """
        Upload a local file and return its public URL.

        Raises:
            MediaUploadError: if the store rejects the file
        """
        pass


class LocalMediaUploader(MediaUploader):
    """Copies uploads into a local directory served under base_url."""

    def __init__(self, root_dir: Union[str, Path], base_url: str = "/media"):
        self.root_dir = Path(root_dir)
        self.base_url = base_url.rstrip("/")

    def upload(self, path: str, public_id: str, folder: str) -> str:
        source = Path(path)
        target_dir = self.root_dir / folder
        target = target_dir / f"{public_id}{source.suffix}"
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as e:
            raise MediaUploadError(
                f"Upload of {source.name} failed: {e}",
                details={"path": str(source), "public_id": public_id}
            )
        logger.info(f"Uploaded {source.name} -> {target}")
        return f"{self.base_url}/{folder}/{target.name}"


class ContentService:
    """
    Prepares content records and serves live previews.

    Args:
        analyzer: Analyzer bound to the taxonomy source
        uploader: Media store for featured images (optional)
        fail_on_taxonomy_error: Raise on taxonomy failure (default), or
            carry on with "Uncategorized" and the remaining analysis
    """

    def __init__(
        self,
        analyzer: ContentAnalyzer,
        uploader: Optional[MediaUploader] = None,
        fail_on_taxonomy_error: bool = True
    ):
        self.analyzer = analyzer
        self.uploader = uploader
        self.fail_on_taxonomy_error = fail_on_taxonomy_error

    @staticmethod
    def validate(data: Union[ContentPayload, dict]) -> ContentPayload:
        """Validate a raw request body into a ContentPayload."""
        if isinstance(data, ContentPayload):
            return data
        try:
            return ContentPayload.model_validate(data)
        except ValidationError as e:
            raise InvalidPayloadError(
                f"Invalid content payload: {e.error_count()} error(s)",
                errors=[
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in e.errors()
                ]
            )

    def _upload_featured_image(self, file: UploadedFile, author_id: str) -> str:
        if self.uploader is None:
            raise MediaUploadError("No media uploader configured")

        public_id = f"content_{author_id}_{int(time.time() * 1000)}"
        url = self.uploader.upload(file.path, public_id, FEATURED_IMAGE_FOLDER)
        if not url:
            raise MediaUploadError(
                "Media upload failed during content creation",
                details={"public_id": public_id}
            )
        return url

    def prepare(
        self,
        data: Union[ContentPayload, dict],
        author_id: str,
        file: Optional[UploadedFile] = None
    ) -> ContentRecord:
        """
        Build a content record from a submission.

        Raises:
            InvalidPayloadError: payload failed validation
            MediaUploadError: featured image could not be stored
            TaxonomyFetchError: taxonomy unavailable and fail_on_taxonomy_error set
        """
        payload = self.validate(data)

        featured_image = None
        if file is not None:
            featured_image = self._upload_featured_image(file, author_id)

        analysis = self.analyzer.analyze(
            payload.body, fail_on_taxonomy_error=self.fail_on_taxonomy_error
        )
        fields = analysis.to_content_fields()

        record = ContentRecord(
            title=payload.title,
            body=payload.body,
            author_id=author_id,
            featured_image=featured_image,
            tags=payload.tags,
            status=payload.status,
            metadata=payload.metadata,
            auto_tags=fields["auto_tags"],
            category=fields["category"],
            optimization=Optimization(**fields["optimization"]),
        )
        logger.info(f"Prepared content '{record.title}' for author {author_id}")
        return record

    def preview(self, body: str) -> dict:
        """Real-time analysis of an unsaved body (camelCase response)."""
        return self.analyzer.preview(body)
