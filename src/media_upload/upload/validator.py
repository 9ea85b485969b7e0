"""Pre-flight eligibility validation for media uploads.

Checks a selected file and its metadata before any network cost is paid:
- Required fields (file, title, category, content type)
- Content type / media kind compatibility and accepted formats
- Size ceilings per media kind (video, audio, document)
- Non-blocking warnings (missing thumbnail, long description)
"""

from typing import Optional

from media_upload.upload.classifier import classify
from media_upload.upload.config import MB, UploadConfig
from media_upload.upload.models import (
    ContentType,
    EligibilityReport,
    MediaFile,
    MediaKind,
    UploadMetadata,
)

AUDIO_FORMATS = frozenset({"mp3", "wav", "aac", "m4a", "ogg", "flac"})
AUDIO_MIMES = (
    "audio/mpeg",
    "audio/wav",
    "audio/aac",
    "audio/mp4",
    "audio/ogg",
    "audio/flac",
    "audio/x-m4a",
)
VIDEO_FORMATS = frozenset({"mp4"})
VIDEO_MIMES = ("video/mp4",)
BOOK_FORMATS = frozenset({"pdf", "epub"})
BOOK_MIMES = ("application/pdf", "application/epub+zip", "application/epub")

AUDIO_FORMAT_ERROR = "Invalid audio format. Supported: MP3, WAV, AAC, M4A, OGG, FLAC"
VIDEO_FORMAT_ERROR = "Invalid video format. Supported: MP4"
BOOK_FORMAT_ERROR = "Invalid book format. Supported: PDF, EPUB"

# Content types each kind may be submitted as
ACCEPTED_KINDS: dict[ContentType, frozenset[MediaKind]] = {
    ContentType.MUSIC: frozenset({MediaKind.AUDIO}),
    ContentType.PODCASTS: frozenset({MediaKind.AUDIO}),
    ContentType.VIDEOS: frozenset({MediaKind.VIDEO}),
    ContentType.BOOKS: frozenset({MediaKind.DOCUMENT}),
    ContentType.EBOOK: frozenset({MediaKind.DOCUMENT}),
    ContentType.SERMON: frozenset({MediaKind.AUDIO, MediaKind.VIDEO}),
}

_KIND_PHRASE = {
    MediaKind.VIDEO: "a video file",
    MediaKind.AUDIO: "an audio file",
    MediaKind.DOCUMENT: "an ebook/document file",
}

_KIND_SUGGESTION = {
    MediaKind.VIDEO: "Videos or Sermons",
    MediaKind.AUDIO: "Music, Podcasts, or Sermons",
    MediaKind.DOCUMENT: "Books or Ebook",
}

_MISSING_TYPE_HINT = {
    MediaKind.VIDEO: "Please select a content type. Detected a video file; choose Videos or Sermon.",
    MediaKind.AUDIO: (
        "Please select a content type. Detected an audio file; choose Music, Podcasts, or Sermon."
    ),
    MediaKind.DOCUMENT: "Please select a content type. Detected an ebook/PDF; choose Books or Ebook.",
}

THUMBNAIL_RECOMMENDED = frozenset({
    ContentType.MUSIC,
    ContentType.VIDEOS,
    ContentType.BOOKS,
    ContentType.EBOOK,
})


def _matches_format(file: MediaFile, formats: frozenset[str], mimes: tuple[str, ...]) -> bool:
    mime = (file.mime_type or "").lower()
    return file.extension in formats or any(m in mime for m in mimes)


class EligibilityValidator:
    """Validates a file and its metadata against the chosen content type."""

    def __init__(self, config: Optional[UploadConfig] = None):
        self.config = config or UploadConfig()

    def validate(
        self,
        file: Optional[MediaFile],
        metadata: UploadMetadata,
        thumbnail: Optional[MediaFile] = None,
    ) -> EligibilityReport:
        """Validate an upload before submission.

        Args:
            file: Selected media file, if any
            metadata: User-entered metadata
            thumbnail: Optional cover image

        Returns:
            EligibilityReport listing every blocking error and warning
        """
        errors: list[str] = []
        warnings: list[str] = []
        kind = classify(file) if file is not None else MediaKind.UNKNOWN

        if file is None:
            errors.append("Please select a media file")

        title = metadata.title or ""
        if not title.strip():
            errors.append("Title is required")
        elif len(title) > self.config.max_title_length:
            errors.append(f"Title must be {self.config.max_title_length} characters or less")

        if not (metadata.category or "").strip():
            errors.append("Please select a category")

        content_type = self._parse_content_type(metadata.content_type, errors)
        if not metadata.content_type:
            if file is not None and kind in _MISSING_TYPE_HINT:
                errors.append(_MISSING_TYPE_HINT[kind])
            else:
                errors.append("Please select a content type.")

        if file is not None and content_type is not None:
            compatible = self._check_compatibility(file, kind, content_type, errors)
            if compatible:
                self._check_size(file, kind, errors)

        if content_type is not None:
            if thumbnail is None and content_type in THUMBNAIL_RECOMMENDED:
                warnings.append(
                    f"Adding a thumbnail image will help your {content_type.label} upload stand out."
                )
        if len(metadata.description or "") > self.config.description_soft_limit:
            warnings.append(
                f"Description is longer than {self.config.description_soft_limit} "
                "characters and may be shortened when displayed."
            )

        return EligibilityReport(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            kind=kind,
        )

    def _parse_content_type(self, value: str, errors: list[str]) -> Optional[ContentType]:
        if not value:
            return None
        try:
            return ContentType(value.lower())
        except ValueError:
            allowed = ", ".join(c.value for c in ContentType)
            errors.append(f"Unknown content type '{value}'. Must be one of: {allowed}")
            return None

    def _check_compatibility(
        self,
        file: MediaFile,
        kind: MediaKind,
        content_type: ContentType,
        errors: list[str],
    ) -> bool:
        """Append a kind/format error if the file does not fit the content type.

        Returns:
            True if the detected kind is accepted for the content type
        """
        accepted = ACCEPTED_KINDS[content_type]
        label = content_type.label

        if kind == MediaKind.UNKNOWN:
            needed = " or ".join(sorted(k.value for k in accepted))
            errors.append(
                f"Unable to detect file type (unknown). {label} uploads require "
                f"{needed} files."
            )
            return False

        if kind not in accepted:
            if content_type == ContentType.SERMON:
                errors.append(
                    "Invalid file type. Sermons must be either audio or video files, "
                    f"but you uploaded {_KIND_PHRASE[kind]}."
                )
            else:
                needed = _KIND_PHRASE[next(iter(accepted))]
                errors.append(
                    f"Invalid file type. You selected {label} but uploaded "
                    f"{_KIND_PHRASE[kind]}. Please select {_KIND_SUGGESTION[kind]} "
                    f"or upload {needed}."
                )
            return False

        if kind == MediaKind.AUDIO and not _matches_format(file, AUDIO_FORMATS, AUDIO_MIMES):
            errors.append(AUDIO_FORMAT_ERROR)
        elif kind == MediaKind.VIDEO and not _matches_format(file, VIDEO_FORMATS, VIDEO_MIMES):
            errors.append(VIDEO_FORMAT_ERROR)
        elif kind == MediaKind.DOCUMENT and not _matches_format(file, BOOK_FORMATS, BOOK_MIMES):
            errors.append(BOOK_FORMAT_ERROR)
        return True

    def _check_size(self, file: MediaFile, kind: MediaKind, errors: list[str]) -> None:
        if not file.size_bytes:
            return
        limits = {
            MediaKind.VIDEO: ("Video", self.config.max_video_bytes),
            MediaKind.AUDIO: ("Audio", self.config.max_audio_bytes),
            MediaKind.DOCUMENT: ("Book", self.config.max_document_bytes),
        }
        noun, limit = limits[kind]
        if file.size_bytes > limit:
            errors.append(f"{noun} file size exceeds {limit // MB}MB limit")


class LiveValidation:
    """Keeps an eligibility report current while the user edits the form.

    The report is recomputed whenever an input changes while a file, a
    category and a content type are all present, and cleared otherwise.
    """

    def __init__(self, validator: Optional[EligibilityValidator] = None):
        self.validator = validator or EligibilityValidator()
        self.file: Optional[MediaFile] = None
        self.thumbnail: Optional[MediaFile] = None
        self.metadata = UploadMetadata()
        self.report: Optional[EligibilityReport] = None
        self.runs = 0
        self._fingerprint: Optional[tuple] = None

    def set_file(self, file: Optional[MediaFile]) -> Optional[EligibilityReport]:
        self.file = file
        return self._refresh()

    def set_thumbnail(self, thumbnail: Optional[MediaFile]) -> Optional[EligibilityReport]:
        self.thumbnail = thumbnail
        return self._refresh()

    def update_metadata(self, **changes) -> Optional[EligibilityReport]:
        self.metadata = self.metadata.model_copy(update=changes)
        return self._refresh()

    def reset(self) -> None:
        self.file = None
        self.thumbnail = None
        self.metadata = UploadMetadata()
        self.report = None
        self._fingerprint = None

    def _refresh(self) -> Optional[EligibilityReport]:
        ready = (
            self.file is not None
            and bool(self.metadata.category)
            and bool(self.metadata.content_type)
        )
        if not ready:
            self.report = None
            self._fingerprint = None
            return None

        fingerprint = (self.file, self.thumbnail, self.metadata.model_dump_json())
        if fingerprint != self._fingerprint:
            self.report = self.validator.validate(self.file, self.metadata, self.thumbnail)
            self._fingerprint = fingerprint
            self.runs += 1
        return self.report
