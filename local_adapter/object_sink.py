from __future__ import annotations

import json
import uuid
from dataclasses import asdict
from pathlib import Path
from typing import Any, Mapping

import fsspec

from pixelpress_core.storage.interfaces import ObjectHeaders

METADATA_SUFFIX = ".metadata.json"


class LocalObjectWriter:
    def __init__(
        self,
        fs: fsspec.AbstractFileSystem,
        tmp_path: str,
        dest_path: str,
        sidecar: dict[str, Any],
    ) -> None:
        self.fs = fs
        self.tmp_path = tmp_path
        self.dest_path = dest_path
        self.sidecar = sidecar
        self._handle = fs.open(tmp_path, "wb")

    def write(self, data: bytes) -> int:
        return self._handle.write(data)

    def close(self) -> None:
        if self._handle.closed:
            return
        self._handle.close()
        self.fs.mv(self.tmp_path, self.dest_path)
        with self.fs.open(f"{self.dest_path}{METADATA_SUFFIX}", "w") as handle:
            json.dump(self.sidecar, handle, indent=2, sort_keys=True)

    def abort(self) -> None:
        if not self._handle.closed:
            self._handle.close()
        if self.fs.exists(self.tmp_path):
            self.fs.rm(self.tmp_path)


class LocalObjectSink:
    """Writes objects under ``root/<bucket>/<name>`` for local runs.

    Headers and metadata are stored in a JSON sidecar next to the object
    since a plain filesystem has nowhere else to keep them.
    """

    def __init__(self, root: str) -> None:
        self.fs = fsspec.filesystem("file")
        self.root = root

    def object_path(self, bucket: str, name: str) -> str:
        return str(Path(self.root).joinpath(bucket, *name.strip("/").split("/")))

    def open_writer(
        self,
        bucket: str,
        name: str,
        *,
        headers: ObjectHeaders,
        metadata: Mapping[str, str],
    ) -> LocalObjectWriter:
        dest = self.object_path(bucket, name)
        self.fs.makedirs(str(Path(dest).parent), exist_ok=True)
        tmp = f"{dest}.partial-{uuid.uuid4().hex}"
        sidecar = {"headers": asdict(headers), "metadata": dict(metadata)}
        return LocalObjectWriter(self.fs, tmp, dest, sidecar)

    def read_metadata(self, bucket: str, name: str) -> dict[str, Any]:
        path = f"{self.object_path(bucket, name)}{METADATA_SUFFIX}"
        with self.fs.open(path, "r") as handle:
            return json.load(handle)
