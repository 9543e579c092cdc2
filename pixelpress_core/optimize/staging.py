from __future__ import annotations

import os
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from pixelpress_core.errors import FetchIOError, ValidationError


@dataclass(frozen=True)
class StagedArtifact:
    path: str
    size_bytes: int


@contextmanager
def staging_area(root: str) -> Iterator[str]:
    """Yield a directory private to one invocation; removed on exit."""
    try:
        os.makedirs(root, exist_ok=True)
        area = tempfile.mkdtemp(prefix="pixelpress-", dir=root)
    except OSError as exc:
        raise FetchIOError(f"Failed creating staging area under {root}: {exc}") from exc
    try:
        yield area
    finally:
        shutil.rmtree(area, ignore_errors=True)


def staged_name(object_name: str) -> str:
    """Relative staging path for an object name; rejects names leaving the area."""
    relative = os.path.normpath(object_name.lstrip("/"))
    if relative in {"", "."} or relative == ".." or relative.startswith(f"..{os.sep}"):
        raise ValidationError(f"Object name cannot be staged: {object_name!r}")
    return relative


def staged_path(area: str, object_name: str) -> str:
    path = os.path.join(area, staged_name(object_name))
    if os.path.commonpath([area, path]) != area:
        raise ValidationError(f"Object name escapes staging area: {object_name!r}")
    return path


def cleanup_staged(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        return
