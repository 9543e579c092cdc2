from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class StorageEvent:
    bucket: str
    name: str
    content_type: str = ""
    cache_control: str = ""
    content_encoding: str = ""
    content_language: str = ""
    content_disposition: str = ""
    metadata: Mapping[str, str] = field(default_factory=dict)
    generation: str | None = None

    def __post_init__(self) -> None:
        # Frozen view over a private copy so callers cannot mutate the event.
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def uri(self) -> str:
        return f"gs://{self.bucket}/{self.name}"
