from __future__ import annotations

from pixelpress_core.events.storage_event import StorageEvent

ALLOWED_CONTENT_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/svg+xml",
)

COMPRESSED_MARKER_KEY = "compressed"
COMPRESSED_MARKER_VALUE = "yes"


def is_allowed_content_type(content_type: str) -> bool:
    return content_type in ALLOWED_CONTENT_TYPES


def is_already_processed(event: StorageEvent) -> bool:
    # Republishing emits a new finalize event for the same object; the marker
    # written alongside the compressed bytes is what stops that event here.
    return event.metadata.get(COMPRESSED_MARKER_KEY) == COMPRESSED_MARKER_VALUE
