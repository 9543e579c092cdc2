from __future__ import annotations

from typing import Any, Mapping

from google.cloud import storage

from pixelpress_core.storage.interfaces import ObjectHeaders


class GcsObjectWriter:
    """Resumable upload that only becomes the live object on ``close``."""

    def __init__(self, stream: Any) -> None:
        self._stream = stream
        self._done = False

    def write(self, data: bytes) -> int:
        return self._stream.write(data)

    def close(self) -> None:
        if self._done:
            return
        self._done = True
        self._stream.close()

    def abort(self) -> None:
        # BlobWriter commits whatever is buffered when closed, including by
        # its finalizer; terminate() cancels the session and closes the buffer.
        if self._done:
            return
        self._done = True
        self._stream.terminate()


class GcsObjectSink:
    def __init__(
        self,
        client: storage.Client | None = None,
        *,
        chunk_size: int | None = None,
    ) -> None:
        self._client = client
        self.chunk_size = chunk_size

    def client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client()
        return self._client

    def open_writer(
        self,
        bucket: str,
        name: str,
        *,
        headers: ObjectHeaders,
        metadata: Mapping[str, str],
    ) -> GcsObjectWriter:
        blob = self.client().bucket(bucket).blob(name)
        blob.cache_control = headers.cache_control or None
        blob.content_disposition = headers.content_disposition or None
        blob.content_language = headers.content_language or None
        blob.content_encoding = headers.content_encoding or None
        blob.content_type = headers.content_type or None
        blob.metadata = dict(metadata)
        kwargs: dict[str, Any] = {}
        if self.chunk_size:
            kwargs["chunk_size"] = self.chunk_size
        return GcsObjectWriter(blob.open("wb", **kwargs))
