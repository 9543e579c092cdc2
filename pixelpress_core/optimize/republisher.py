from __future__ import annotations

from typing import BinaryIO, Mapping

from pixelpress_core.errors import MissingStagedError, PublishCommitError, PublishIOError
from pixelpress_core.events.storage_event import StorageEvent
from pixelpress_core.logging import get_logger
from pixelpress_core.optimize.guards import (
    COMPRESSED_MARKER_KEY,
    COMPRESSED_MARKER_VALUE,
)
from pixelpress_core.storage.interfaces import ObjectHeaders, ObjectSink, ObjectWriter

logger = get_logger(__name__)


def merge_metadata(metadata: Mapping[str, str]) -> dict[str, str]:
    merged = {COMPRESSED_MARKER_KEY: COMPRESSED_MARKER_VALUE}
    for key, value in metadata.items():
        if key == COMPRESSED_MARKER_KEY:
            continue
        merged[key] = value
    return merged


def _open_staged(staged_path: str) -> BinaryIO:
    try:
        return open(staged_path, "rb")
    except FileNotFoundError as exc:
        raise MissingStagedError(f"Staged file not found: {staged_path}") from exc
    except OSError as exc:
        raise PublishIOError(f"Failed opening {staged_path}: {exc}") from exc


def _abort(writer: ObjectWriter, event: StorageEvent) -> None:
    try:
        writer.abort()
    except Exception as exc:
        logger.warning(
            "Failed to abort object writer",
            extra={
                "bucket": event.bucket,
                "object_name": event.name,
                "error_message": str(exc),
            },
        )


def republish(
    event: StorageEvent,
    staged_path: str,
    sink: ObjectSink,
    *,
    chunk_bytes: int = 1024 * 1024,
) -> int:
    """Overwrite the event's object with the staged bytes.

    The written object carries the event's headers and its metadata plus the
    ``compressed`` marker. Returns the number of bytes published.
    """
    with _open_staged(staged_path) as reader:
        try:
            writer = sink.open_writer(
                event.bucket,
                event.name,
                headers=ObjectHeaders.from_event(event),
                metadata=merge_metadata(event.metadata),
            )
        except Exception as exc:
            raise PublishIOError(f"Failed opening writer for {event.uri}: {exc}") from exc

        size = 0
        try:
            while True:
                chunk = reader.read(chunk_bytes)
                if not chunk:
                    break
                writer.write(chunk)
                size += len(chunk)
        except Exception as exc:
            _abort(writer, event)
            raise PublishIOError(f"Failed writing {event.uri}: {exc}") from exc

        try:
            writer.close()
        except Exception as exc:
            raise PublishCommitError(f"Failed finalizing {event.uri}: {exc}") from exc

    return size
