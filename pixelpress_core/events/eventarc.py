from __future__ import annotations

from typing import Any

from pixelpress_core.errors import ValidationError
from pixelpress_core.events.storage_event import StorageEvent


def _coerce_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _coerce_metadata(value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError("Object metadata must be a JSON object")
    return {str(k): _coerce_str(v) for k, v in value.items()}


def parse_storage_object(data: dict[str, Any]) -> StorageEvent:
    bucket = data.get("bucket")
    name = data.get("name")
    if not bucket or not name:
        raise ValidationError("Storage object missing bucket or name")

    generation = data.get("generation")
    return StorageEvent(
        bucket=str(bucket),
        name=str(name),
        content_type=_coerce_str(data.get("contentType")),
        cache_control=_coerce_str(data.get("cacheControl")),
        content_encoding=_coerce_str(data.get("contentEncoding")),
        content_language=_coerce_str(data.get("contentLanguage")),
        content_disposition=_coerce_str(data.get("contentDisposition")),
        metadata=_coerce_metadata(data.get("metadata")),
        generation=str(generation) if generation is not None else None,
    )


def parse_cloudevent(payload: dict[str, Any]) -> StorageEvent:
    data = payload.get("data")
    if not isinstance(data, dict):
        raise ValidationError("CloudEvent data is required")
    return parse_storage_object(data)
