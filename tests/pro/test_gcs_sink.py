from __future__ import annotations

import gc

import pytest
from google.cloud import storage
from google.cloud.storage import fileio

from gcp_adapter.gcs_sink import GcsObjectSink, GcsObjectWriter
from pixelpress_core.errors import PublishIOError
from pixelpress_core.events.storage_event import StorageEvent
from pixelpress_core.optimize.republisher import republish
from pixelpress_core.storage.interfaces import ObjectHeaders


class _FakeStream:
    def __init__(self, blob):
        self.blob = blob
        self.buffer = bytearray()
        self.closed = False
        self.terminated = False

    def write(self, data):
        self.buffer.extend(data)
        return len(data)

    def close(self):
        self.closed = True
        self.blob.uploaded = bytes(self.buffer)

    def terminate(self):
        self.terminated = True


class _FakeBlob:
    def __init__(self, name):
        self.name = name
        self.cache_control = None
        self.content_disposition = None
        self.content_language = None
        self.content_encoding = None
        self.content_type = None
        self.metadata = None
        self.uploaded = None
        self.open_calls = []
        self.stream = None

    def open(self, mode, **kwargs):
        self.open_calls.append((mode, kwargs))
        self.stream = _FakeStream(self)
        return self.stream


class _FakeBucket:
    def __init__(self, name, blobs):
        self.name = name
        self.blobs = blobs

    def blob(self, name):
        blob = _FakeBlob(name)
        self.blobs[(self.name, name)] = blob
        return blob


class _FakeClient:
    def __init__(self):
        self.blobs = {}

    def bucket(self, name):
        return _FakeBucket(name, self.blobs)


def test_gcs_writer_sets_headers_and_metadata():
    client = _FakeClient()
    sink = GcsObjectSink(client)

    writer = sink.open_writer(
        "b",
        "dir/a.png",
        headers=ObjectHeaders(
            cache_control="public, max-age=60",
            content_disposition="inline",
            content_language="en",
            content_encoding="",
            content_type="image/png",
        ),
        metadata={"compressed": "yes"},
    )
    writer.write(b"abc")
    blob = client.blobs[("b", "dir/a.png")]
    assert blob.uploaded is None
    writer.close()

    assert blob.uploaded == b"abc"
    assert blob.cache_control == "public, max-age=60"
    assert blob.content_disposition == "inline"
    assert blob.content_language == "en"
    assert blob.content_encoding is None
    assert blob.content_type == "image/png"
    assert blob.metadata == {"compressed": "yes"}
    assert blob.open_calls == [("wb", {})]


def test_gcs_writer_abort_terminates_stream():
    client = _FakeClient()
    writer = GcsObjectSink(client).open_writer(
        "b", "a.png", headers=ObjectHeaders(), metadata={}
    )
    writer.write(b"partial")
    writer.abort()
    writer.close()

    blob = client.blobs[("b", "a.png")]
    assert blob.uploaded is None
    assert blob.stream.terminated is True
    assert blob.stream.closed is False


def _recording_blob_writer(name="a.png"):
    blob = storage.Blob(name, bucket=storage.Bucket(client=None, name="b"))
    stream = fileio.BlobWriter(blob, chunk_size=256 * 1024)
    uploads = []
    stream._upload_chunks_from_buffer = uploads.append
    return stream, uploads


def test_blob_writer_close_uploads_final_chunk():
    stream, uploads = _recording_blob_writer()
    writer = GcsObjectWriter(stream)
    writer.write(b"complete")
    writer.close()

    assert uploads == [1]


def test_aborted_blob_writer_is_not_committed_on_collection():
    stream, uploads = _recording_blob_writer()
    writer = GcsObjectWriter(stream)
    writer.write(b"partial")
    writer.abort()
    writer.close()

    assert stream.closed
    del writer, stream
    gc.collect()
    assert uploads == []


class _BlobWriterBlob(_FakeBlob):
    """Hands out real BlobWriters whose second write fails."""

    def __init__(self, name):
        super().__init__(name)
        self.uploads = []

    def open(self, mode, **kwargs):
        self.open_calls.append((mode, kwargs))
        stream, self.uploads = _recording_blob_writer(self.name)
        real_write = stream.write
        calls = {"n": 0}

        def write(data):
            calls["n"] += 1
            if calls["n"] > 1:
                raise OSError("connection reset")
            return real_write(data)

        stream.write = write
        return stream


class _BlobWriterBucket(_FakeBucket):
    def blob(self, name):
        blob = _BlobWriterBlob(name)
        self.blobs[(self.name, name)] = blob
        return blob


class _BlobWriterClient(_FakeClient):
    def bucket(self, name):
        return _BlobWriterBucket(name, self.blobs)


def test_failed_republish_commits_nothing(tmp_path):
    staged = tmp_path / "a.png"
    staged.write_bytes(b"0123456789")
    client = _BlobWriterClient()
    event = StorageEvent(bucket="photos", name="a.png", content_type="image/png")

    with pytest.raises(PublishIOError):
        republish(event, str(staged), GcsObjectSink(client), chunk_bytes=4)

    blob = client.blobs[("photos", "a.png")]
    gc.collect()
    assert blob.uploads == []


def test_gcs_chunk_size_is_forwarded():
    client = _FakeClient()
    GcsObjectSink(client, chunk_size=256 * 1024).open_writer(
        "b", "a.png", headers=ObjectHeaders(), metadata={}
    )
    assert client.blobs[("b", "a.png")].open_calls == [
        ("wb", {"chunk_size": 256 * 1024})
    ]


def test_republish_overwrites_same_object(tmp_path):
    staged = tmp_path / "a.png"
    staged.write_bytes(b"optimized")
    client = _FakeClient()
    event = StorageEvent(
        bucket="photos",
        name="cats/a.png",
        content_type="image/png",
        cache_control="no-cache",
        metadata={"owner": "alice"},
    )

    republish(event, str(staged), GcsObjectSink(client))

    blob = client.blobs[("photos", "cats/a.png")]
    assert blob.uploaded == b"optimized"
    assert blob.metadata == {"compressed": "yes", "owner": "alice"}
    assert blob.cache_control == "no-cache"
