"""Media kind detection for selected files.

Classification looks at the MIME type first and falls back to the file
extension. It never touches the file contents or the network.
"""

import re

from media_upload.core.errors import ValidationError
from media_upload.upload.models import MediaFile, MediaKind

VIDEO_EXTENSIONS = frozenset({"mp4", "mov", "avi", "mkv", "webm"})
AUDIO_EXTENSIONS = frozenset({"mp3", "wav", "aac", "m4a", "ogg", "flac", "wma"})
DOCUMENT_EXTENSIONS = frozenset({"pdf", "epub", "mobi"})

DOCUMENT_MIMES = (
    "application/pdf",
    "application/epub",
    "application/epub+zip",
    "application/x-mobipocket-ebook",
)

_MIME_BY_EXTENSION = {
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "pdf": "application/pdf",
    "epub": "application/epub+zip",
}

_IMAGE_NAME = re.compile(r"\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)


def classify(file: MediaFile) -> MediaKind:
    """Classify a file as video, audio, document or unknown.

    Args:
        file: Selected media file

    Returns:
        Detected MediaKind
    """
    mime = (file.mime_type or "").lower()
    if mime:
        if mime.startswith("video/"):
            return MediaKind.VIDEO
        if mime.startswith("audio/"):
            return MediaKind.AUDIO
        if any(doc in mime for doc in DOCUMENT_MIMES):
            return MediaKind.DOCUMENT

    extension = file.extension
    if extension in VIDEO_EXTENSIONS:
        return MediaKind.VIDEO
    if extension in AUDIO_EXTENSIONS:
        return MediaKind.AUDIO
    if extension in DOCUMENT_EXTENSIONS:
        return MediaKind.DOCUMENT
    return MediaKind.UNKNOWN


def guess_mime_type(name: str) -> str:
    """Guess a MIME type from a file name."""
    extension = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    return _MIME_BY_EXTENSION.get(extension, "application/octet-stream")


def is_image(name: str) -> bool:
    return bool(_IMAGE_NAME.search(name))


def screen_selection(file: MediaFile) -> MediaFile:
    """Gate a freshly picked file before it enters the form.

    Images and QuickTime video are refused outright. A missing MIME type is
    filled in from the file name.

    Raises:
        ValidationError: If the file type cannot be submitted at all
    """
    if is_image(file.name):
        raise ValidationError("Photos/images are not allowed.")

    mime = file.mime_type or guess_mime_type(file.name)
    if mime == "video/quicktime":
        raise ValidationError("MOV videos are not supported. Please upload an MP4 video.")

    if mime != file.mime_type:
        return file.model_copy(update={"mime_type": mime})
    return file
