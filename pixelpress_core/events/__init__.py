from pixelpress_core.events.eventarc import parse_cloudevent, parse_storage_object
from pixelpress_core.events.storage_event import StorageEvent

__all__ = [
    "StorageEvent",
    "parse_cloudevent",
    "parse_storage_object",
]
