from pixelpress_core.storage.interfaces import ObjectHeaders, ObjectSink, ObjectWriter

__all__ = [
    "ObjectHeaders",
    "ObjectSink",
    "ObjectWriter",
]
