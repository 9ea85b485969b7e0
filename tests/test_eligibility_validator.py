"""Tests for pre-flight eligibility validation.

Covers required fields, content type / media kind compatibility, accepted
formats, per-kind size ceilings, warnings, and live recomputation.
"""

import pytest

from media_upload.upload.config import MB, UploadConfig
from media_upload.upload.models import MediaFile, MediaKind, UploadMetadata
from media_upload.upload.validator import (
    AUDIO_FORMAT_ERROR,
    BOOK_FORMAT_ERROR,
    VIDEO_FORMAT_ERROR,
    EligibilityValidator,
    LiveValidation,
)


def media(name, mime_type=None, size_bytes=5 * MB):
    return MediaFile(uri=f"/tmp/{name}", name=name, mime_type=mime_type, size_bytes=size_bytes)


def metadata(content_type="music", title="Morning Praise", category="Worship", description=""):
    return UploadMetadata(
        title=title,
        description=description,
        category=category,
        content_type=content_type,
    )


@pytest.fixture
def validator():
    return EligibilityValidator(UploadConfig())


class TestEligibilityValidator:
    """Tests for EligibilityValidator.validate."""

    def test_valid_music_upload(self, validator):
        report = validator.validate(media("song.mp3", "audio/mpeg"), metadata())

        assert report.is_valid is True
        assert report.errors == []
        assert report.kind == MediaKind.AUDIO

    def test_missing_thumbnail_is_only_a_warning(self, validator):
        report = validator.validate(media("song.mp3", "audio/mpeg"), metadata())

        assert report.is_valid is True
        assert len(report.warnings) == 1
        assert "thumbnail" in report.warnings[0]

    def test_thumbnail_silences_warning(self, validator):
        thumbnail = media("cover.jpg", "image/jpeg", 100_000)
        report = validator.validate(media("song.mp3", "audio/mpeg"), metadata(), thumbnail)
        assert report.warnings == []

    def test_podcasts_do_not_ask_for_thumbnail(self, validator):
        report = validator.validate(media("ep1.mp3", "audio/mpeg"), metadata("podcasts"))
        assert report.warnings == []

    def test_music_with_video_file_names_both(self, validator):
        report = validator.validate(media("clip.mp4", "video/mp4"), metadata("music"))

        assert report.is_valid is False
        assert report.kind == MediaKind.VIDEO
        error = report.errors[0]
        assert "You selected Music" in error
        assert "a video file" in error
        assert "Please select Videos or Sermons or upload an audio file." in error

    def test_videos_with_audio_file(self, validator):
        report = validator.validate(media("song.mp3", "audio/mpeg"), metadata("videos"))

        assert report.errors == [
            "Invalid file type. You selected Videos but uploaded an audio file. "
            "Please select Music, Podcasts, or Sermons or upload a video file."
        ]

    def test_sermon_accepts_audio_and_video(self, validator):
        audio = validator.validate(media("talk.mp3", "audio/mpeg"), metadata("sermon"))
        video = validator.validate(media("talk.mp4", "video/mp4"), metadata("sermon"))
        assert audio.is_valid and video.is_valid

    def test_sermon_rejects_document(self, validator):
        report = validator.validate(media("notes.pdf", "application/pdf"), metadata("sermon"))

        assert report.is_valid is False
        assert "Sermons must be either audio or video files" in report.errors[0]
        assert "an ebook/document file" in report.errors[0]

    def test_ebook_accepts_pdf_and_epub(self, validator):
        pdf = validator.validate(media("book.pdf", "application/pdf"), metadata("ebook"))
        epub = validator.validate(media("book.epub"), metadata("books"))
        assert pdf.is_valid and epub.is_valid

    def test_unknown_kind(self, validator):
        report = validator.validate(media("notes.xyz"), metadata("music"))

        assert report.kind == MediaKind.UNKNOWN
        assert report.errors == [
            "Unable to detect file type (unknown). Music uploads require audio files."
        ]

    @pytest.mark.parametrize("file,content_type,expected", [
        (media("track.wma", "audio/x-ms-wma"), "music", AUDIO_FORMAT_ERROR),
        (media("clip.webm", "video/webm"), "videos", VIDEO_FORMAT_ERROR),
        (media("book.mobi"), "books", BOOK_FORMAT_ERROR),
    ])
    def test_unsupported_formats(self, validator, file, content_type, expected):
        report = validator.validate(file, metadata(content_type))
        assert expected in report.errors

    def test_sixty_megabyte_music_file(self, validator):
        report = validator.validate(media("long.mp3", "audio/mpeg", 60 * MB), metadata())

        assert report.is_valid is False
        assert report.errors == ["Audio file size exceeds 50MB limit"]

    def test_size_ceilings_per_kind(self, validator):
        video = validator.validate(media("film.mp4", "video/mp4", 101 * MB), metadata("videos"))
        book = validator.validate(media("tome.pdf", "application/pdf", 51 * MB), metadata("books"))

        assert video.errors == ["Video file size exceeds 100MB limit"]
        assert book.errors == ["Book file size exceeds 50MB limit"]

    def test_video_under_ceiling(self, validator):
        report = validator.validate(media("film.mp4", "video/mp4", 99 * MB), metadata("videos"))
        assert report.is_valid

    def test_size_not_checked_on_kind_mismatch(self, validator):
        """Only the compatibility error is reported when the kind is wrong."""
        report = validator.validate(media("film.mp4", "video/mp4", 500 * MB), metadata("music"))
        assert len(report.errors) == 1
        assert "size" not in report.errors[0]

    def test_required_fields(self, validator):
        report = validator.validate(None, UploadMetadata())

        assert report.is_valid is False
        assert "Please select a media file" in report.errors
        assert "Title is required" in report.errors
        assert "Please select a category" in report.errors
        assert "Please select a content type." in report.errors

    def test_whitespace_title_is_missing(self, validator):
        report = validator.validate(media("song.mp3", "audio/mpeg"), metadata(title="   "))
        assert report.errors == ["Title is required"]

    def test_title_length_limit(self, validator):
        ok = validator.validate(media("song.mp3", "audio/mpeg"), metadata(title="a" * 100))
        too_long = validator.validate(media("song.mp3", "audio/mpeg"), metadata(title="a" * 101))

        assert ok.is_valid
        assert too_long.errors == ["Title must be 100 characters or less"]

    def test_missing_content_type_hint_uses_detected_kind(self, validator):
        report = validator.validate(media("clip.mp4", "video/mp4"), metadata(content_type=""))
        assert report.errors == [
            "Please select a content type. Detected a video file; choose Videos or Sermon."
        ]

    def test_unknown_content_type(self, validator):
        report = validator.validate(media("song.mp3", "audio/mpeg"), metadata("audiobook"))
        assert report.errors[0].startswith("Unknown content type 'audiobook'")

    def test_long_description_warns(self, validator):
        report = validator.validate(
            media("ep1.mp3", "audio/mpeg"),
            metadata("podcasts", description="x" * 501),
        )

        assert report.is_valid
        assert len(report.warnings) == 1
        assert "500 characters" in report.warnings[0]


class TestLiveValidation:
    """Tests for LiveValidation recomputation."""

    @pytest.fixture
    def live(self, validator):
        return LiveValidation(validator)

    def test_no_report_until_inputs_present(self, live):
        assert live.set_file(media("song.mp3", "audio/mpeg")) is None
        assert live.update_metadata(category="Worship") is None
        assert live.runs == 0

        report = live.update_metadata(content_type="music")

        assert report is not None
        assert live.runs == 1
        assert report.errors == ["Title is required"]

    def test_recomputes_only_on_change(self, live):
        """Unchanged inputs do not trigger another validation run."""
        live.set_file(media("song.mp3", "audio/mpeg"))
        live.update_metadata(category="Worship", content_type="music")
        live.update_metadata(category="Worship")
        assert live.runs == 1

        report = live.update_metadata(title="Morning Praise")
        assert live.runs == 2
        assert report.is_valid

    def test_file_replacement_recomputes(self, live):
        live.update_metadata(title="Clip", category="Worship", content_type="music")
        live.set_file(media("song.mp3", "audio/mpeg"))
        report = live.set_file(media("clip.mp4", "video/mp4"))

        assert report.is_valid is False
        assert report.kind == MediaKind.VIDEO

    def test_clearing_content_type_drops_report(self, live):
        live.set_file(media("song.mp3", "audio/mpeg"))
        live.update_metadata(category="Worship", content_type="music")

        assert live.update_metadata(content_type="") is None
        assert live.report is None

    def test_reset(self, live):
        live.set_file(media("song.mp3", "audio/mpeg"))
        live.update_metadata(title="x", category="Worship", content_type="music")
        live.reset()

        assert live.file is None
        assert live.metadata == UploadMetadata()
        assert live.report is None
