from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Protocol

from pixelpress_core.events.storage_event import StorageEvent


@dataclass(frozen=True)
class ObjectHeaders:
    cache_control: str = ""
    content_disposition: str = ""
    content_language: str = ""
    content_encoding: str = ""
    content_type: str = ""

    @classmethod
    def from_event(cls, event: StorageEvent) -> "ObjectHeaders":
        return cls(
            cache_control=event.cache_control,
            content_disposition=event.content_disposition,
            content_language=event.content_language,
            content_encoding=event.content_encoding,
            content_type=event.content_type,
        )


class ObjectWriter(Protocol):
    def write(self, data: bytes) -> int:
        ...

    def close(self) -> None:
        """Finalize the object. Nothing is visible in storage before this."""
        ...

    def abort(self) -> None:
        """Release the writer without committing what was written."""
        ...


class ObjectSink(Protocol):
    def open_writer(
        self,
        bucket: str,
        name: str,
        *,
        headers: ObjectHeaders,
        metadata: Mapping[str, str],
    ) -> ObjectWriter:
        ...
