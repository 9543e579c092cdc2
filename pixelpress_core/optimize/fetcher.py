from __future__ import annotations

import os

import requests  # type: ignore[import-untyped]

from pixelpress_core.errors import FetchIOError, FetchNetworkError
from pixelpress_core.optimize.staging import cleanup_staged


class ResultFetcher:
    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        timeout_s: float = 60.0,
        chunk_bytes: int = 1024 * 1024,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout_s = timeout_s
        self.chunk_bytes = chunk_bytes

    def fetch(self, result_url: str, destination: str) -> int:
        """Download ``result_url`` into ``destination`` and return its size.

        Either the whole body lands in ``destination`` or the file is removed.
        """
        try:
            with self.session.get(
                result_url, stream=True, timeout=self.timeout_s
            ) as response:
                response.raise_for_status()
                return self._write_body(response, destination)
        except requests.RequestException as exc:
            cleanup_staged(destination)
            raise FetchNetworkError(f"Failed fetching {result_url}: {exc}") from exc

    def _write_body(self, response: requests.Response, destination: str) -> int:
        try:
            os.makedirs(os.path.dirname(destination) or ".", exist_ok=True)
        except OSError as exc:
            raise FetchIOError(f"Failed creating staging folders: {exc}") from exc

        size = 0
        try:
            with open(destination, "wb") as writer:
                for chunk in response.iter_content(chunk_size=self.chunk_bytes):
                    if not chunk:
                        continue
                    writer.write(chunk)
                    size += len(chunk)
        except requests.RequestException:
            # RequestException subclasses OSError; keep it a network failure.
            raise
        except OSError as exc:
            cleanup_staged(destination)
            raise FetchIOError(f"Failed writing {destination}: {exc}") from exc
        return size
