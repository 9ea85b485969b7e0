#!/usr/bin/env python3
"""Submit a local media file to the ingestion service.

Runs the full pipeline: eligibility checks, multipart upload, progress and the
final outcome. The bearer token is read from MEDIA_UPLOAD_TOKEN and service
settings from the other MEDIA_UPLOAD_* variables.
"""

import argparse
import asyncio
import os
import sys

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from media_upload.core import configure_logging
from media_upload.core.errors import AuthError, ValidationError
from media_upload.upload.classifier import guess_mime_type
from media_upload.upload.collaborators import EnvCredentialProvider, InMemoryMediaStore
from media_upload.upload.config import UploadConfig
from media_upload.upload.models import CATEGORIES, ContentType, MediaFile
from media_upload.upload.pipeline import UploadPipeline
from media_upload.upload.state_machine import UploadStatus


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("file", help="Path of the media file to upload")
    parser.add_argument("--title", required=True)
    parser.add_argument("--description", default="")
    parser.add_argument("--category", default=CATEGORIES[0])
    parser.add_argument(
        "--content-type",
        required=True,
        choices=[c.value for c in ContentType],
    )
    parser.add_argument("--thumbnail", help="Optional cover image")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--json-logs", action="store_true")
    return parser.parse_args(argv)


def describe(path: str) -> MediaFile:
    name = os.path.basename(path)
    return MediaFile(
        uri=os.path.abspath(path),
        name=name,
        mime_type=guess_mime_type(name),
        size_bytes=os.path.getsize(path),
    )


def print_progress(state) -> None:
    if state.status in (UploadStatus.VERIFYING, UploadStatus.UPLOADING):
        print(f"  [{state.status.value:>9}] {state.progress:5.1f}%  {state.message}")


async def run(args) -> int:
    pipeline = UploadPipeline(
        UploadConfig.from_env(),
        credentials=EnvCredentialProvider(),
        media_store=InMemoryMediaStore(),
    )
    pipeline.subscribe(print_progress)

    try:
        pipeline.select_file(describe(args.file))
        if args.thumbnail:
            pipeline.select_thumbnail(describe(args.thumbnail))
        report = pipeline.update_metadata(
            title=args.title,
            description=args.description,
            category=args.category,
            content_type=args.content_type,
        )
        for warning in (report.warnings if report else []):
            print(f"Warning: {warning}")

        state = await pipeline.submit()
    except ValidationError as e:
        for error in e.errors:
            print(f"ERROR: {error}")
        return 2
    except AuthError as e:
        print(f"ERROR: {e.message}")
        return 2
    finally:
        pipeline.teardown()

    print("=" * 60)
    if state.status == UploadStatus.SUCCESS:
        print("UPLOAD COMPLETE")
        print("=" * 60)
        print(f"Media ID: {state.record.id}")
        print(f"File URL: {state.record.file_url}")
        return 0

    if pipeline.moderation is not None:
        print(pipeline.moderation.title.upper())
        print("=" * 60)
        print(pipeline.moderation.friendly_message)
    else:
        print("UPLOAD FAILED")
        print("=" * 60)
    print(state.message)
    for record in pipeline.failures:
        print(f"  [{record.category.value}] {record.component}: {record.error_type}")
    return 1


def main():
    args = parse_args()
    configure_logging(level=args.log_level, json_format=args.json_logs)

    if not os.path.exists(args.file):
        print(f"ERROR: File not found: {args.file}")
        sys.exit(2)

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
