"""Client-side media submission pipeline.

Validates a selected media file against its content type, submits it to the
ingestion service, merges realtime and simulated progress, and interprets
moderation outcomes.
"""

__version__ = "0.1.0"
