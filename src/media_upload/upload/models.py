"""Data models for media submission.

Covers the selected file and its user metadata, the pre-flight eligibility
report, inbound progress events, moderation verdicts, and the normalized
record handed to the media store after a successful upload.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Any

from pydantic import BaseModel, Field


class MediaKind(str, Enum):
    """Coarse media classification derived from file metadata."""
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    UNKNOWN = "unknown"


class ContentType(str, Enum):
    """Content types a user can choose for an upload."""
    MUSIC = "music"
    VIDEOS = "videos"
    BOOKS = "books"
    EBOOK = "ebook"
    PODCASTS = "podcasts"
    SERMON = "sermon"

    @property
    def label(self) -> str:
        return CONTENT_TYPE_LABELS[self]


CONTENT_TYPE_LABELS = {
    ContentType.MUSIC: "Music",
    ContentType.VIDEOS: "Videos",
    ContentType.BOOKS: "Books",
    ContentType.EBOOK: "Ebook",
    ContentType.PODCASTS: "Podcasts",
    ContentType.SERMON: "Sermons",
}

# Offered in the picker; free text is accepted as well.
CATEGORIES = [
    "Worship",
    "Inspiration",
    "Youth",
    "Teachings",
    "Marriage",
    "Counselling",
]


class MediaFile(BaseModel):
    """A file chosen through the media source. Replaced wholesale on re-selection."""
    model_config = {"frozen": True}

    uri: str = Field(..., description="Local URI or path of the file")
    name: str = Field(..., description="File name including extension")
    mime_type: Optional[str] = Field(None, description="MIME type reported by the picker")
    size_bytes: Optional[int] = Field(None, ge=0, description="File size in bytes")

    @property
    def extension(self) -> str:
        if "." not in self.name:
            return ""
        return self.name.rsplit(".", 1)[-1].lower()


class UploadMetadata(BaseModel):
    """User-entered fields describing the upload."""
    title: str = Field(default="", description="Title (required, at most 100 characters)")
    description: str = Field(default="", description="Optional description")
    category: str = Field(default="", description="Genre category, e.g. Worship")
    content_type: str = Field(default="", description="One of the ContentType values")


class EligibilityReport(BaseModel):
    """Structured pass/fail result of pre-flight validation."""
    is_valid: bool = Field(..., description="Whether every rule passed")
    errors: list[str] = Field(default_factory=list, description="Blocking problems")
    warnings: list[str] = Field(default_factory=list, description="Non-blocking advice")
    kind: MediaKind = Field(default=MediaKind.UNKNOWN, description="Detected media kind")


class ProgressEvent(BaseModel):
    """Progress notification pushed by the ingestion service."""
    model_config = {"populate_by_name": True}

    upload_id: str = Field(..., alias="uploadId")
    stage: str = Field(default="uploading")
    progress: float = Field(default=0.0)
    message: str = Field(default="")
    timestamp: Optional[Any] = Field(None)


class ModerationResult(BaseModel):
    """Server-supplied moderation verdict attached to HTTP 403 responses."""
    status: str = Field(..., description="rejected or under_review")
    reason: Optional[str] = Field(None)
    flags: list[str] = Field(default_factory=list)


class MediaRecord(BaseModel):
    """Normalized record handed to the media store after a successful upload."""
    id: str
    title: str
    description: str = ""
    uri: str = ""
    category: Any = None
    content_type: str
    file_url: str = ""
    file_mime_type: Optional[str] = None
    thumbnail_url: Optional[str] = None
    image_url: str = ""
    view_count: int = 0
    listen_count: int = 0
    read_count: int = 0
    download_count: int = 0
    comment_count: int = 0
    share_count: int = 0
    favorite_count: int = 0
    saved_count: int = 0
    is_live: bool = False
    topics: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_server(
        cls,
        media: dict[str, Any],
        metadata: UploadMetadata,
        file: MediaFile,
    ) -> "MediaRecord":
        """Build a record from the server's ``media`` object.

        Counters start at zero. A sermon keeps its user-facing content type
        even though the server stores it as music or videos.
        """
        now = datetime.now(timezone.utc)
        cover = media.get("thumbnailUrl") or media.get("imageUrl")
        if metadata.content_type == ContentType.SERMON.value:
            content_type = ContentType.SERMON.value
        else:
            content_type = media.get("contentType") or metadata.content_type
        return cls(
            id=str(media.get("_id") or media.get("id") or ""),
            title=media.get("title") or metadata.title,
            description=media.get("description") or metadata.description,
            uri=media.get("fileUrl") or "",
            category=media.get("genre"),
            content_type=content_type,
            file_url=media.get("fileUrl") or "",
            file_mime_type=media.get("fileMimeType") or file.mime_type,
            thumbnail_url=cover or None,
            image_url=cover or "",
            created_at=now,
            updated_at=now,
        )


class UploadResult(BaseModel):
    """Outcome of a successful submission."""
    upload_id: str
    status_code: int
    record: MediaRecord
    raw_media: dict[str, Any] = Field(default_factory=dict)
